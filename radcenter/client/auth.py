"""
Client authentication: staff PIN login, patient passcode login, re-login and
logout.

Both schemes are checked on the client against the pulled user and patient
lists. The patient passcode is derived from public data (first three
letters of the name plus the phone number) and is not a real secret.
"""
from typing import TYPE_CHECKING, Any, Dict, Optional
import logging

from ..core.permissions import Page, UserRole
from ..core.security import verify_patient_passcode, verify_pin
from .exceptions import AuthenticationError, ClientError, ValidationFailedError

if TYPE_CHECKING:
    from .context import AppContext

logger = logging.getLogger(__name__)


class Auth:
    """
    Session management for an application context.
    """

    def __init__(self, ctx: "AppContext"):
        self.ctx = ctx

    def show_login(self, mode: str = "staff") -> None:
        self.ctx.ui.show_login(mode, None)

    def show_relogin(self, saved_user: Dict[str, Any]) -> None:
        """
        Ask only for the PIN, with the remembered user pre-selected.
        """
        logger.info(f"Re-login requested for {saved_user.get('id')}")
        self.ctx.ui.show_login("staff", saved_user)

    def authenticate_staff(self, user_id: Optional[str], pin: Optional[str]) -> Dict[str, Any]:
        """
        Check a staff PIN against the pulled user list.

        Args:
            user_id: Selected user id
            pin: Entered PIN

        Returns:
            Dict: The matching user row

        Raises:
            ValidationFailedError: If no user was selected
            AuthenticationError: If the user is unknown or the PIN is wrong
        """
        if not user_id:
            raise ValidationFailedError("Select a user")
        user = self.ctx.state.find("users", user_id)
        if user is None or not verify_pin(pin or "", user.get("pin")):
            logger.warning(f"Login failed: invalid PIN for {user_id}")
            raise AuthenticationError("Invalid PIN. Please try again.")
        return user

    def authenticate_patient(self, phone: Optional[str], passcode: Optional[str]) -> Dict[str, Any]:
        """
        Check a patient passcode and build the patient session.

        Returns:
            Dict: Session {id, full_name, role, phone}

        Raises:
            ValidationFailedError: If a field is empty
            AuthenticationError: If no patient has the phone, or the passcode is wrong
        """
        phone = (phone or "").strip()
        passcode = (passcode or "").strip()
        if not phone or not passcode:
            raise ValidationFailedError("Enter Phone and Passcode")
        patient = next((p for p in self.ctx.state.patients if p.get("phone") == phone), None)
        if patient is None:
            raise AuthenticationError("Patient not found with this phone number.")
        if not verify_patient_passcode(passcode, patient.get("full_name"), phone):
            logger.warning(f"Patient login failed for {patient.get('id')}")
            raise AuthenticationError("Invalid Passcode")
        return {
            "id": patient["id"],
            "full_name": patient.get("full_name", ""),
            "role": UserRole.PATIENT.value,
            "phone": patient.get("phone", ""),
        }

    def _start_session(self, user: Dict[str, Any]) -> Optional[Page]:
        ctx = self.ctx
        ctx.state.user = user
        ctx.storage.save_session(user)
        logger.info(f"Login successful: {user.get('id')} ({user.get('role')})")
        return ctx.router.navigate(ctx.policy.default_page(user.get("role")))

    def login_staff(self, user_id: Optional[str], pin: Optional[str]) -> Optional[Page]:
        """
        Staff login. Failures are shown to the user and leave no session.

        Returns:
            Page: The landing page opened, or None on failure
        """
        try:
            user = self.authenticate_staff(user_id, pin)
        except ClientError as e:
            self.ctx.ui.alert(e.message)
            return None
        return self._start_session(user)

    def login_patient(self, phone: Optional[str], passcode: Optional[str]) -> Optional[Page]:
        """
        Patient portal login.
        """
        try:
            session = self.authenticate_patient(phone, passcode)
        except ClientError as e:
            self.ctx.ui.alert(e.message)
            return None
        return self._start_session(session)

    def logout(self) -> None:
        """
        End the session, forget the remembered user and reload.
        """
        logger.info(f"Logout: {(self.ctx.state.user or {}).get('id')}")
        self.ctx.state.user = None
        self.ctx.state.current_view = None
        self.ctx.storage.clear_session()
        self.ctx.ui.reload()

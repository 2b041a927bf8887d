"""
Admin view - staff accounts and the backend URL setting.
"""
from typing import Any, Dict, Optional
import logging

from ..client import helpers
from ..client.exceptions import ClientError, ValidationFailedError
from ..client.storage import BACKEND_URL_KEY
from ..config import settings
from ..core import ids
from ..core.permissions import Action, Page, STAFF_ROLES
from ..core.security import hash_pin
from .base import BaseView, guarded

logger = logging.getLogger(__name__)

PIN_MASK = "****"


class AdminView(BaseView):
    page = Page.ADMIN

    def build(self) -> Dict[str, Any]:
        return {
            "users": [self.user_row(user) for user in self.state.users],
            "roles": [role.value for role in STAFF_ROLES],
            "backend_url": self.ctx.storage.get(BACKEND_URL_KEY) or settings.backend_url or "",
            "mock_mode": self.ctx.api.is_mock,
        }

    def user_row(self, user: Dict[str, Any]) -> Dict[str, Any]:
        sync = self.state.sync_status(user["id"])
        return {
            "id": user["id"],
            "full_name": user.get("full_name", ""),
            "email": user.get("email", ""),
            "role": user.get("role", ""),
            "pin": PIN_MASK,
            "sync_status": sync.value if sync else None,
        }

    @guarded(Action.MANAGE_SETTINGS, "Access Denied: You don't have permission to change settings.")
    def save_settings(self, url: str) -> bool:
        """
        Store the backend URL override and reload to use it.
        """
        url = (url or "").strip()
        if not url:
            raise ValidationFailedError("URL cannot be empty")
        self.ctx.storage.set(BACKEND_URL_KEY, url)
        logger.info(f"Backend URL set to {url}")
        self.ui.alert("Settings Saved. Reloading...")
        self.ui.reload()
        return True

    @guarded(Action.MANAGE_USERS, "Access Denied: You don't have permission to manage users.")
    def create_user(self, full_name: str, email: str, role: str, pin: str) -> Optional[str]:
        """
        Create a staff account. The user appears at once; the backend call
        is awaited and its outcome reported.

        Returns:
            str: The user's id (server id on success), or None on failure
        """
        pin = (pin or "").strip()
        if not full_name or not email or not pin or len(pin) != 4 or not pin.isdigit():
            raise ValidationFailedError("Please fill all fields (PIN must be 4 digits)")
        if role not in [r.value for r in STAFF_ROLES]:
            raise ValidationFailedError(f"Unknown role: {role}")

        user = {
            "id": ids.placeholder_id(ids.USER_PREFIX),
            "full_name": full_name,
            "email": email,
            "role": role,
            "pin": hash_pin(pin),
            "created_at": helpers.now_local(),
        }
        self.ui.show_loading(True)
        try:
            self.state.add("users", user)
            self.render()
            server_id = self.ctx.create_remote("users", user["id"])
        except ClientError as e:
            logger.error(f"Create user failed: {e.message}")
            self.ui.alert("Failed to create user")
            return None
        finally:
            self.ui.show_loading(False)
        self.ui.alert("User Created Successfully")
        self.render()
        return server_id

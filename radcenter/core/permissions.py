"""
Core permissions utilities for role-based access control.

Page access and action access live in one policy object so the two tables
cannot drift apart.
"""
from enum import Enum
from typing import Dict, List, Optional, Set


class UserRole(str, Enum):
    """
    Enumeration for user roles in the radiology center.

    Roles:
    - RECEPTION: Front desk, registers patients and visits
    - TECHNICIAN: Performs scans and attaches image links
    - RADIOLOGIST: Writes and signs reports
    - ADMIN: Full access, manages users and settings
    - PATIENT: Synthesized portal session, never stored as a user row
    """
    RECEPTION = "Reception"
    TECHNICIAN = "Technician"
    RADIOLOGIST = "Radiologist"
    ADMIN = "Admin"
    PATIENT = "Patient"


STAFF_ROLES = (UserRole.RECEPTION, UserRole.TECHNICIAN, UserRole.RADIOLOGIST, UserRole.ADMIN)


class Page(str, Enum):
    """
    Navigable views.
    """
    RECEPTION = "reception"
    TECHNICIAN = "technician"
    RADIOLOGIST = "radiologist"
    ADMIN = "admin"
    PATIENT_PORTAL = "patient-portal"


class Action(str, Enum):
    """
    Named mutating actions checked before any state change.
    """
    CREATE_VISIT = "createVisit"
    CREATE_PATIENT = "createPatient"
    START_SCAN = "startScan"
    COMPLETE_SCAN = "completeScan"
    MANAGE_IMAGES = "manageImages"
    WRITE_REPORT = "writeReport"
    MARK_COMPLETE = "markComplete"
    MANAGE_USERS = "manageUsers"
    MANAGE_SETTINGS = "manageSettings"
    VIEW_ALL_PATIENTS = "viewAllPatients"


# Role -> ordered pages; the first entry is the landing page
ROLE_PAGES: Dict[UserRole, List[Page]] = {
    UserRole.RECEPTION: [Page.RECEPTION],
    UserRole.TECHNICIAN: [Page.TECHNICIAN],
    UserRole.RADIOLOGIST: [Page.RADIOLOGIST, Page.RECEPTION, Page.TECHNICIAN],
    UserRole.ADMIN: [Page.ADMIN, Page.RECEPTION, Page.TECHNICIAN, Page.RADIOLOGIST],
    UserRole.PATIENT: [Page.PATIENT_PORTAL],
}

# Action -> roles allowed to perform it
ACTION_ROLES: Dict[Action, List[UserRole]] = {
    Action.CREATE_VISIT: [UserRole.RECEPTION, UserRole.ADMIN],
    Action.CREATE_PATIENT: [UserRole.RECEPTION, UserRole.ADMIN],
    Action.START_SCAN: [UserRole.TECHNICIAN, UserRole.ADMIN],
    Action.COMPLETE_SCAN: [UserRole.TECHNICIAN, UserRole.ADMIN],
    Action.MANAGE_IMAGES: [UserRole.TECHNICIAN, UserRole.RADIOLOGIST, UserRole.ADMIN],
    Action.WRITE_REPORT: [UserRole.RADIOLOGIST, UserRole.ADMIN],
    Action.MARK_COMPLETE: [UserRole.RADIOLOGIST, UserRole.ADMIN],
    Action.MANAGE_USERS: [UserRole.ADMIN],
    Action.MANAGE_SETTINGS: [UserRole.ADMIN],
    Action.VIEW_ALL_PATIENTS: [UserRole.RADIOLOGIST, UserRole.ADMIN],
}


def parse_role(value) -> Optional[UserRole]:
    """
    Convert a stored role string to a UserRole, or None when unknown.
    """
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(value)
    except ValueError:
        return None


class AccessPolicy:
    """
    Single authorization surface for page navigation and mutating actions.

    Unknown roles get no pages and no actions.
    """

    def __init__(
        self,
        role_pages: Optional[Dict[UserRole, List[Page]]] = None,
        action_roles: Optional[Dict[Action, List[UserRole]]] = None,
    ):
        self.role_pages = role_pages or ROLE_PAGES
        self.action_roles = action_roles or ACTION_ROLES

    def allowed_pages(self, role) -> List[Page]:
        """
        Get the ordered pages a role may open.

        Args:
            role: User role (enum or stored string)

        Returns:
            List[Page]: Allowed pages, landing page first
        """
        parsed = parse_role(role)
        if parsed is None:
            return []
        return list(self.role_pages.get(parsed, []))

    def default_page(self, role) -> Page:
        """
        Get the landing page for a role. Unknown roles land on reception,
        which they cannot open, so the router keeps them out.
        """
        pages = self.allowed_pages(role)
        return pages[0] if pages else Page.RECEPTION

    def can_access(self, role, page) -> bool:
        """
        Check if a role may open a page.

        Args:
            role: User role
            page: Page enum or page name

        Returns:
            bool: True if the page is in the role's allowed pages
        """
        try:
            page = Page(page)
        except ValueError:
            return False
        return page in self.allowed_pages(role)

    def roles_for(self, action: Action) -> Set[UserRole]:
        return set(self.action_roles.get(Action(action), []))

    def has_permission(self, role, action) -> bool:
        """
        Check if a role may perform an action.

        Args:
            role: User role
            action: Action enum or action name

        Returns:
            bool: True if the role is listed for the action
        """
        parsed = parse_role(role)
        if parsed is None:
            return False
        try:
            action = Action(action)
        except ValueError:
            return False
        return parsed in self.roles_for(action)


policy = AccessPolicy()

"""
View controllers, one per page.
"""
from typing import Dict

from ..core.permissions import Page
from .admin import AdminView
from .base import BaseView
from .patient_portal import PatientPortalView
from .radiologist import RadiologistView
from .reception import ReceptionView
from .technician import TechnicianView

VIEW_CLASSES = {
    Page.RECEPTION: ReceptionView,
    Page.TECHNICIAN: TechnicianView,
    Page.RADIOLOGIST: RadiologistView,
    Page.ADMIN: AdminView,
    Page.PATIENT_PORTAL: PatientPortalView,
}


def build_views(ctx) -> Dict[Page, BaseView]:
    return {page: view_class(ctx) for page, view_class in VIEW_CLASSES.items()}

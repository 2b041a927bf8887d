"""
Patient portal - a patient's own visits and released reports.
"""
from typing import Any, Dict, Optional
import logging

from ..client import helpers
from ..client.exceptions import PermissionDeniedError
from ..core.permissions import Page, UserRole
from ..workflow import is_released
from .base import BaseView, guarded

logger = logging.getLogger(__name__)

NOT_REPORTED = "Not Reported"


class PatientPortalView(BaseView):
    page = Page.PATIENT_PORTAL

    def _patient_id(self) -> Optional[str]:
        user = self.state.user
        if not user or user.get("role") != UserRole.PATIENT.value:
            return None
        return user.get("id")

    def build(self) -> Optional[Dict[str, Any]]:
        patient_id = self._patient_id()
        if patient_id is None:
            # Staff sessions never see the portal
            logger.warning("Non-patient session reached the patient portal, ending it")
            self.state.user = None
            self.ctx.storage.clear_session()
            self.ctx.auth.show_login("patient")
            return None

        visits = [v for v in self.state.visits if v.get("patient_id") == patient_id]
        visits.sort(key=helpers.visit_sort_key, reverse=True)
        return {
            "patient_name": self.state.user.get("full_name", ""),
            "visits": [
                {
                    "id": visit["id"],
                    "check_in_time": visit.get("check_in_time", ""),
                    "doctor": helpers.doctor_name(self.state, visit.get("assigned_doctor_id")),
                    "studies": [self.portal_study(s) for s in helpers.studies_for_visit(self.state, visit["id"])],
                }
                for visit in visits
            ],
        }

    def portal_study(self, study: Dict[str, Any]) -> Dict[str, Any]:
        released = is_released(study.get("status"))
        return {
            "id": study["id"],
            "modality": study.get("modality", ""),
            "study_name": study.get("study_name", ""),
            "released": released,
            "label": "View Report" if released else NOT_REPORTED,
        }

    @guarded()
    def view_report(self, study_id: str) -> Dict[str, Any]:
        """
        Show one of the patient's own reports once it is released.
        """
        study = self.get_study(study_id)
        visit = helpers.get_visit(self.state, study.get("visit_id")) or {}
        patient_id = self._patient_id()
        if patient_id is None or visit.get("patient_id") != patient_id:
            raise PermissionDeniedError("Access Denied")
        if not is_released(study.get("status")):
            raise PermissionDeniedError(NOT_REPORTED)
        model = self.report_model(study)
        self.ui.show_modal("report", model)
        return model

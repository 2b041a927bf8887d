"""
Technician view - the scan worklist and image links.
"""
from typing import Any, Dict, List
import json
import logging

from ..client import helpers
from ..client.exceptions import ValidationFailedError
from ..core.permissions import Action, Page
from ..workflow import StudyStatus
from .base import BaseView, guarded

logger = logging.getLogger(__name__)

WORKLIST_STATUSES = [StudyStatus.WAITING.value, StudyStatus.SCANNING.value]


class TechnicianView(BaseView):
    page = Page.TECHNICIAN

    def build(self) -> Dict[str, Any]:
        model = self.date_model()
        studies = helpers.studies_on(self.state, self.selected_date, WORKLIST_STATUSES)
        model.update({
            "studies": [self.study_card(study) for study in studies],
            "can_scan": self.ctx.has_permission(Action.START_SCAN),
            "can_manage_images": self.ctx.has_permission(Action.MANAGE_IMAGES),
        })
        return model

    def _move(self, study_id: str, status: StudyStatus, question: str) -> bool:
        study = self.get_study(study_id)
        self.check_move(study, status)
        if not self.ui.confirm(question):
            return False
        self.state.update("studies", study["id"], {"status": status.value})
        self.render()
        self.ctx.submit_update(f"updateStudyStatus {status.value}", study["id"], self.ctx.api.update_study_status, status.value)
        return True

    @guarded(Action.START_SCAN, "Access Denied: You don't have permission to start scans.")
    def start_scan(self, study_id: str) -> bool:
        """Waiting -> Scanning, after confirmation."""
        return self._move(study_id, StudyStatus.SCANNING, "Start Scanning patient?")

    @guarded(Action.COMPLETE_SCAN, "Access Denied: You don't have permission to complete scans.")
    def complete_scan(self, study_id: str) -> bool:
        """Scanning -> Reporting: send the study to the radiologist."""
        return self._move(study_id, StudyStatus.REPORTING, "Complete scan and send to Radiologist?")

    # Image links

    @guarded()
    def open_images(self, study_id: str) -> Dict[str, Any]:
        study = self.get_study(study_id)
        patient = helpers.get_patient_by_visit(self.state, study.get("visit_id")) or {}
        model = {
            "study_id": study["id"],
            "patient_name": patient.get("full_name", "Unknown"),
            "links": helpers.parse_image_links(study.get("image_links")),
            "can_edit": self.ctx.has_permission(Action.MANAGE_IMAGES),
        }
        self.ui.show_modal("image-links", model)
        return model

    def _save_links(self, study: Dict[str, Any], links: List[str]) -> None:
        self.state.update("studies", study["id"], {"image_links": json.dumps(links)})
        self.ctx.submit_update("updateImageLinks", study["id"], self.ctx.api.update_image_links, links)

    @guarded(Action.MANAGE_IMAGES, "Access Denied: You don't have permission to manage images.")
    def add_image_link(self, study_id: str, link: str) -> List[str]:
        link = (link or "").strip()
        if not link:
            raise ValidationFailedError("Please enter a valid link")
        if not link.startswith("http"):
            raise ValidationFailedError("Link must start with http:// or https://")
        study = self.get_study(study_id)
        links = helpers.parse_image_links(study.get("image_links")) + [link]
        self._save_links(study, links)
        self.open_images(study["id"])
        return links

    @guarded(Action.MANAGE_IMAGES, "Access Denied: You don't have permission to manage images.")
    def remove_image_link(self, study_id: str, index: int) -> List[str]:
        study = self.get_study(study_id)
        links = helpers.parse_image_links(study.get("image_links"))
        if not 0 <= index < len(links):
            raise ValidationFailedError("No such image link")
        if not self.ui.confirm("Remove this image link?"):
            return links
        links.pop(index)
        self._save_links(study, links)
        self.open_images(study["id"])
        return links

"""
Shared view controller plumbing.
"""
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional
import functools
import logging

from ..client import helpers
from ..client.exceptions import ClientError, ValidationFailedError
from ..core.permissions import Action, Page
from ..workflow import can_transition, StudyStatus

if TYPE_CHECKING:
    from ..client.context import AppContext

logger = logging.getLogger(__name__)


def guarded(action: Optional[Action] = None, denied: Optional[str] = None) -> Callable:
    """
    Wrap a controller method: check the action permission first, then turn
    any ClientError into a blocking alert. The wrapped call returns None when
    it was refused or failed.

    Args:
        action: Permission required before the method runs
        denied: Message shown when the permission is missing
    """
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                if action is not None:
                    self.ctx.require(action, denied)
                return fn(self, *args, **kwargs)
            except ClientError as e:
                self.ctx.ui.alert(e.message)
                return None
        return wrapper
    return decorator


class BaseView:
    """
    A page controller. `build` returns the page's view model; `render`
    hands it to the user interface.

    Attributes:
        selected_date: Day the worklists are filtered on (YYYY-MM-DD)
    """
    page: Page

    def __init__(self, ctx: "AppContext"):
        self.ctx = ctx
        self.selected_date = helpers.today()

    @property
    def state(self):
        return self.ctx.state

    @property
    def ui(self):
        return self.ctx.ui

    def build(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def render(self) -> Optional[Dict[str, Any]]:
        model = self.build()
        if model is not None:
            self.ui.render_page(self.page.value, model)
        return model

    # Date navigation

    def date_model(self) -> Dict[str, Any]:
        return {
            "date": self.selected_date,
            "prev_date": helpers.shift_date(self.selected_date, -1),
            "next_date": helpers.shift_date(self.selected_date, 1),
            "is_today": self.selected_date == helpers.today(),
        }

    def change_date(self, day: str) -> Optional[Dict[str, Any]]:
        self.selected_date = day
        return self.render()

    def previous_day(self) -> Optional[Dict[str, Any]]:
        return self.change_date(helpers.shift_date(self.selected_date, -1))

    def next_day(self) -> Optional[Dict[str, Any]]:
        return self.change_date(helpers.shift_date(self.selected_date, 1))

    # Records

    def get_study(self, study_id: str) -> Dict[str, Any]:
        study = self.state.find("studies", study_id)
        if study is None:
            raise ValidationFailedError(f"Study not found: {study_id}")
        return study

    def check_move(self, study: Dict[str, Any], status: StudyStatus) -> None:
        """
        Raises:
            ValidationFailedError: If the study may not move to `status`
        """
        if not can_transition(study.get("status"), status):
            raise ValidationFailedError(
                f"Cannot move study from {study.get('status') or StudyStatus.WAITING.value} to {status.value}"
            )

    def study_card(self, study: Dict[str, Any]) -> Dict[str, Any]:
        visit = helpers.get_visit(self.state, study.get("visit_id")) or {}
        patient = helpers.get_patient(self.state, visit.get("patient_id")) or {}
        sync = self.state.sync_status(study["id"])
        return {
            "id": study["id"],
            "visit_id": study.get("visit_id"),
            "patient_id": patient.get("id"),
            "patient_name": patient.get("full_name", "Unknown"),
            "modality": study.get("modality", ""),
            "region": study.get("region", ""),
            "study_name": study.get("study_name", ""),
            "status": study.get("status") or StudyStatus.WAITING.value,
            "check_in_time": visit.get("check_in_time", ""),
            "doctor": helpers.doctor_name(self.state, study.get("assigned_doctor_id")),
            "image_count": len(helpers.parse_image_links(study.get("image_links"))),
            "has_report": bool(study.get("report_content")),
            "sync_status": sync.value if sync else None,
        }

    def report_model(self, study: Dict[str, Any], content: Optional[str] = None) -> Dict[str, Any]:
        """
        Printable report: patient header, study and report HTML.
        """
        patient = helpers.get_patient_by_visit(self.state, study.get("visit_id")) or {}
        return {
            "study": self.study_card(study),
            "patient": {
                "id": patient.get("id"),
                "full_name": patient.get("full_name", ""),
                "dob": helpers.date_of(patient.get("dob")),
                "age": patient.get("age") or helpers.calculate_age(patient.get("dob")),
                "gender": patient.get("gender", ""),
            },
            "doctor": helpers.doctor_name(self.state, study.get("assigned_doctor_id")),
            "completed_at": study.get("completed_at", ""),
            "content": content if content is not None else study.get("report_content", ""),
        }

"""
Radiologist view - reporting worklist, report editor and sign-off.

Editing is locked to the radiologist the study is assigned to; everyone
else who can open the page sees the report read-only.
"""
from typing import Any, Dict, List, Optional
import logging

from ..client import helpers
from ..client.editor import CLINICAL_CONTEXT, ReadOnlyError, ReportEditor
from ..client.exceptions import ClientError, ValidationFailedError
from ..core.permissions import Action, Page
from ..exceptions import InvalidTransitionException
from ..workflow import StudyStatus, status_after_report_save
from .base import BaseView, guarded

logger = logging.getLogger(__name__)

TABS = {
    "reporting": [StudyStatus.REPORTING.value, StudyStatus.REPORTED.value],
    "completed": [StudyStatus.COMPLETED.value],
}


class RadiologistView(BaseView):
    """
    Attributes:
        my_list: Only studies assigned to the session user
        active_tab: "reporting" or "completed"
        calendar_mode: Week overview instead of the day list
        study_id: Study open in the editor, if any
        editor: The open report document
        show_templates: Template sidebar visibility
    """
    page = Page.RADIOLOGIST

    def __init__(self, ctx):
        super().__init__(ctx)
        self.my_list = False
        self.active_tab = "reporting"
        self.calendar_mode = False
        self.study_id: Optional[str] = None
        self.editor: Optional[ReportEditor] = None
        self.show_templates = False

    def build(self) -> Dict[str, Any]:
        if self.study_id and self.state.find("studies", self.study_id):
            return self.editor_model()
        self.close_editor()
        if self.calendar_mode:
            return {"mode": "calendar", "days": self.calendar_days()}

        model = self.date_model()
        for_date = helpers.studies_on(self.state, self.selected_date)
        counts = {tab: len([s for s in for_date if s.get("status") in statuses]) for tab, statuses in TABS.items()}
        shown = [s for s in for_date if s.get("status") in TABS[self.active_tab]]
        if self.my_list:
            user_id = (self.state.user or {}).get("id")
            shown = [s for s in shown if s.get("assigned_doctor_id") == user_id]
        model.update({
            "mode": "list",
            "tab": self.active_tab,
            "counts": counts,
            "my_list": self.my_list,
            "studies": [self.study_card(study) for study in shown],
        })
        return model

    def calendar_days(self) -> List[Dict[str, Any]]:
        """
        Per-day counts of studies awaiting a report and completed studies,
        for the week starting today.
        """
        days = []
        for day in helpers.week_from(helpers.today()):
            studies = helpers.studies_on(self.state, day)
            days.append({
                "date": day,
                "reporting": len([s for s in studies if s.get("status") in TABS["reporting"]]),
                "completed": len([s for s in studies if s.get("status") in TABS["completed"]]),
                "total": len(studies),
            })
        return days

    def toggle_calendar(self) -> Dict[str, Any]:
        self.calendar_mode = not self.calendar_mode
        return self.render()

    def view_day_details(self, day: str) -> Dict[str, Any]:
        self.selected_date = day
        self.calendar_mode = False
        return self.render()

    def toggle_my_list(self) -> Dict[str, Any]:
        self.my_list = not self.my_list
        return self.render()

    @guarded()
    def switch_tab(self, tab: str) -> Dict[str, Any]:
        if tab not in TABS:
            raise ValidationFailedError(f"Unknown tab: {tab}")
        self.active_tab = tab
        return self.render()

    # Editor

    def is_assigned(self, study: Dict[str, Any]) -> bool:
        return bool(self.state.user) and study.get("assigned_doctor_id") == self.state.user.get("id")

    @guarded()
    def open_editor(self, study_id: str) -> Dict[str, Any]:
        study = self.get_study(study_id)
        self.study_id = study["id"]
        self.editor = ReportEditor(study.get("report_content"), read_only=not self.is_assigned(study))
        self.show_templates = False
        return self.render()

    def close_editor(self) -> None:
        self.study_id = None
        self.editor = None
        self.show_templates = False

    def editor_model(self) -> Dict[str, Any]:
        study = self.get_study(self.study_id)
        patient = helpers.get_patient_by_visit(self.state, study.get("visit_id")) or {}
        assigned = self.is_assigned(study)
        clinical = {kind: patient.get(column) or "" for kind, (column, _) in CLINICAL_CONTEXT.items()}
        return {
            "mode": "editor",
            "study": self.study_card(study),
            "patient": {
                "full_name": patient.get("full_name", ""),
                "age": patient.get("age") or helpers.calculate_age(patient.get("dob")),
                "gender": patient.get("gender", ""),
            },
            "clinical": clinical,
            "image_links": helpers.parse_image_links(study.get("image_links")),
            "content": self.editor.content,
            "read_only": self.editor.read_only,
            "can_complete": assigned and study.get("status") != StudyStatus.COMPLETED.value,
            "can_print": assigned,
            "templates": self.template_list() if self.show_templates else [],
        }

    def _require_editor(self) -> ReportEditor:
        if self.editor is None or self.study_id is None:
            raise ValidationFailedError("No report is open")
        return self.editor

    @guarded()
    def set_content(self, html: str) -> Dict[str, Any]:
        self._require_editor().set_content(html)
        return self.render()

    @guarded()
    def toggle_import(self, kind: str, checked: bool) -> Dict[str, Any]:
        """
        Prepend the patient's complaint, diagnosis or history to the report.
        Unchecking does not remove it.
        """
        editor = self._require_editor()
        if kind not in CLINICAL_CONTEXT:
            raise ValidationFailedError(f"Unknown clinical field: {kind}")
        study = self.get_study(self.study_id)
        patient = helpers.get_patient_by_visit(self.state, study.get("visit_id")) or {}
        editor.toggle_import(kind, checked, patient)
        return self.render()

    # Templates

    def toggle_templates(self) -> Dict[str, Any]:
        self.show_templates = not self.show_templates
        return self.render()

    def template_list(self) -> List[Dict[str, str]]:
        study = self.state.find("studies", self.study_id) or {}
        return [
            {"name": template.name, "title": template.title}
            for template in self.ctx.templates.for_study(study.get("modality"), study.get("region"))
        ]

    @guarded(Action.WRITE_REPORT, "Access Denied: You don't have permission to write reports.")
    def apply_template(self, name: str) -> Dict[str, Any]:
        """
        Prompt for each template field and replace the report with the
        compiled template.
        """
        editor = self._require_editor()
        study = self.get_study(self.study_id)
        template = self.ctx.templates.get(study.get("modality"), study.get("region"), name)
        if template is None:
            raise ValidationFailedError(f"Template not found: {name}")
        content = template.fill(lambda field: self.ui.prompt(f"Enter {field.label} ({field.key}):", field.default))
        editor.insert_template(content)
        self.show_templates = False
        return self.render()

    # Sign-off

    @guarded(Action.MARK_COMPLETE, "Access Denied: You don't have permission to mark cases as complete.")
    def mark_complete(self, study_id: Optional[str] = None) -> bool:
        """
        Close a study. The open report is saved with it; the backend gets
        saveReport then markComplete in one background job.
        """
        study = self.get_study(study_id or self.study_id)
        self.check_move(study, StudyStatus.COMPLETED)
        if not self.ui.confirm("Mark this case as completed?"):
            return False
        content = self.editor.content if self.editor is not None and self.study_id == study["id"] else study.get("report_content") or ""
        self.state.update("studies", study["id"], {
            "status": StudyStatus.COMPLETED.value,
            "completed_at": helpers.now_local(),
            "report_content": content,
        })
        self.ctx.sync.submit("markComplete", self._sync_complete, study["id"], content)
        self.close_editor()
        self.active_tab = "completed"
        self.render()
        return True

    def _sync_complete(self, study_id: str, content: str) -> None:
        self.ctx.update_remote(study_id, self.ctx.api.save_report, content)
        self.ctx.update_remote(study_id, self.ctx.api.mark_complete)

    @guarded(Action.WRITE_REPORT, "Access Denied: You don't have permission to write reports.")
    def print_report(self) -> Optional[Dict[str, Any]]:
        """
        Sign & Print: save the report (waiting for the backend), mark the
        study Reported, then print.
        """
        editor = self._require_editor()
        if editor.read_only:
            raise ReadOnlyError("Only the assigned radiologist can sign this report")
        study = self.get_study(self.study_id)
        try:
            new_status = status_after_report_save(study.get("status"))
        except InvalidTransitionException as e:
            raise ValidationFailedError(e.detail)

        self.ui.show_loading(True)
        try:
            self.ctx.update_remote(study["id"], self.ctx.api.save_report, editor.content)
        except ClientError as e:
            self.ui.alert(f"Save failed: {e.message}")
            return None
        finally:
            self.ui.show_loading(False)

        study.update({"status": new_status.value, "report_content": editor.content})
        model = self.report_model(study, editor.content)
        self.ui.print_report(model)
        self.render()
        return model

"""
Reception view - the waiting list, patient registration and new visits.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..client import helpers
from ..client.exceptions import ClientError, ValidationFailedError
from ..client.state import SyncStatus
from ..core import ids
from ..core.permissions import Action, Page
from ..workflow import StudyStatus
from .base import BaseView, guarded

logger = logging.getLogger(__name__)

MODALITIES = ("US", "CT", "MRI", "XR")


class ReceptionView(BaseView):
    """
    Attributes:
        calendar_mode: Week overview instead of the day list
        queue: Studies staged for the next visit
    """
    page = Page.RECEPTION

    def __init__(self, ctx):
        super().__init__(ctx)
        self.calendar_mode = False
        self.queue: List[Dict[str, str]] = []

    def build(self) -> Dict[str, Any]:
        model = {
            "mode": "calendar" if self.calendar_mode else "list",
            "can_create_visit": self.ctx.has_permission(Action.CREATE_VISIT),
            "can_create_patient": self.ctx.has_permission(Action.CREATE_PATIENT),
            "recent": [self.visit_summary(visit) for visit in helpers.recent_visits(self.state, 5)],
        }
        if self.calendar_mode:
            model["days"] = self.calendar_days()
        else:
            model.update(self.date_model())
            waiting = helpers.studies_on(self.state, self.selected_date, [StudyStatus.WAITING.value])
            model["waiting"] = [self.study_card(study) for study in waiting]
        return model

    def calendar_days(self) -> List[Dict[str, Any]]:
        """
        Visits grouped by check-in day over the week starting today.
        """
        days = []
        for day in helpers.week_from(helpers.today()):
            visits = [v for v in self.state.visits if helpers.date_of(v.get("check_in_time")) == day]
            days.append({"date": day, "count": len(visits), "visits": [self.visit_summary(v) for v in visits]})
        return days

    def visit_summary(self, visit: Dict[str, Any]) -> Dict[str, Any]:
        patient = helpers.get_patient(self.state, visit.get("patient_id")) or {}
        studies = helpers.studies_for_visit(self.state, visit["id"])
        return {
            "id": visit["id"],
            "patient_id": visit.get("patient_id"),
            "patient_name": patient.get("full_name", "Unknown"),
            "check_in_time": visit.get("check_in_time", ""),
            "status": visit.get("status", ""),
            "doctor": helpers.doctor_name(self.state, visit.get("assigned_doctor_id")),
            "studies": [self.study_card(study) for study in studies],
        }

    def toggle_calendar(self) -> Dict[str, Any]:
        self.calendar_mode = not self.calendar_mode
        return self.render()

    def view_day_details(self, day: str) -> Dict[str, Any]:
        self.selected_date = day
        self.calendar_mode = False
        return self.render()

    # Patients

    def search_patients(self, query: str) -> List[Dict[str, Any]]:
        return helpers.search_patients(self.state, query)

    @guarded()
    def open_patient_file(self, patient_id: str) -> Dict[str, Any]:
        """
        Patient header and the patient's visits, newest first, each with its
        studies.
        """
        patient = helpers.get_patient(self.state, patient_id)
        if patient is None:
            raise ValidationFailedError(f"Patient not found: {patient_id}")
        visits = [v for v in self.state.visits if v.get("patient_id") == patient["id"]]
        visits.sort(key=helpers.visit_sort_key, reverse=True)
        model = {
            "patient": dict(patient, dob=helpers.date_of(patient.get("dob"))),
            "age": patient.get("age") or helpers.calculate_age(patient.get("dob")),
            "visits": [self.visit_summary(visit) for visit in visits],
        }
        self.ui.show_modal("patient-file", model)
        return model

    def open_recent_visits(self, limit: int = 20) -> List[Dict[str, Any]]:
        recent = [self.visit_summary(visit) for visit in helpers.recent_visits(self.state, limit)]
        self.ui.show_modal("recent-visits", recent)
        return recent

    @guarded(Action.CREATE_PATIENT, "Access Denied: You don't have permission to create patients.")
    def save_patient(
        self,
        full_name: str,
        dob: str,
        gender: str = "",
        phone: str = "",
        age: str = "",
        complaint: str = "",
        diagnosis: str = "",
        medical_history: str = "",
    ) -> str:
        """
        Register a patient optimistically and send it in the background.

        Returns:
            str: The patient's local id
        """
        if not full_name or not dob:
            raise ValidationFailedError("Fill required fields")
        patient = {
            "id": ids.placeholder_id(ids.PATIENT_PREFIX),
            "full_name": full_name,
            "dob": dob,
            "age": age or helpers.calculate_age(dob),
            "gender": gender,
            "phone": phone,
            "complaint": complaint,
            "diagnosis": diagnosis,
            "medical_history": medical_history,
            "created_at": helpers.now_local(),
        }
        self.state.add("patients", patient)
        self.ctx.submit_create("createPatient", "patients", patient["id"])
        return patient["id"]

    # New visit

    def open_new_visit(self) -> Dict[str, Any]:
        self.queue = []
        model = {
            "patients": [{"id": p["id"], "full_name": p.get("full_name", "")} for p in self.state.patients],
            "doctors": [{"id": d["id"], "full_name": d.get("full_name", "")} for d in helpers.radiologists(self.state)],
            "modalities": list(MODALITIES),
            "check_in_time": helpers.now_local()[:16],
        }
        self.ui.show_modal("new-visit", model)
        return model

    @guarded()
    def add_study_to_queue(self, modality: str, region: str, study_name: str) -> List[Dict[str, str]]:
        if not region or not study_name:
            raise ValidationFailedError("Please enter region and study name")
        self.queue.append({"modality": modality, "region": region, "study_name": study_name})
        return self.queue

    def remove_study(self, index: int) -> List[Dict[str, str]]:
        if 0 <= index < len(self.queue):
            self.queue.pop(index)
        return self.queue

    @guarded(Action.CREATE_VISIT, "Access Denied: You don't have permission to create visits.")
    def save_visit(
        self,
        patient_id: str,
        assigned_doctor_id: str,
        check_in_time: Optional[str] = None,
        referrer_doctor: str = "",
    ) -> str:
        """
        Create a visit and its queued studies.

        The records are added to state, the page re-rendered, then the visit
        and its studies are sent one after another in a single background
        job.

        Returns:
            str: The visit's local id
        """
        if not patient_id:
            raise ValidationFailedError("Select a patient")
        if not assigned_doctor_id:
            raise ValidationFailedError("Select a doctor")
        if not self.queue:
            raise ValidationFailedError("Add at least one study")

        created_at = helpers.now_local()
        visit = {
            "id": ids.placeholder_id(ids.VISIT_PREFIX),
            "patient_id": self.state.resolve_id(patient_id),
            "referrer_doctor": referrer_doctor,
            "check_in_time": check_in_time or created_at[:16],
            "assigned_doctor_id": assigned_doctor_id,
            "status": "In Progress",
            "created_at": created_at,
        }
        studies = [
            {
                "id": ids.placeholder_id(ids.STUDY_PREFIX),
                "visit_id": visit["id"],
                "modality": queued["modality"],
                "region": queued["region"],
                "study_name": queued["study_name"],
                "assigned_doctor_id": assigned_doctor_id,
                "price": "0",
                "status": StudyStatus.WAITING.value,
                "created_at": created_at,
            }
            for queued in self.queue
        ]

        self.state.add("visits", visit)
        for study in studies:
            self.state.add("studies", study)
        self.queue = []

        self.ctx.router.navigate(Page.RECEPTION)
        self.ui.notify("Saving in background...")
        visit_payload = self.ctx.create_payload("visits", visit["id"])
        study_payloads = [(study["id"], self.ctx.create_payload("studies", study["id"])) for study in studies]
        self.ctx.sync.submit("createVisit", self._sync_visit, visit["id"], visit_payload, study_payloads)
        return visit["id"]

    def _sync_visit(
        self,
        visit_id: str,
        visit_payload: Dict[str, Any],
        study_payloads: List[Tuple[str, Dict[str, Any]]],
    ) -> None:
        try:
            self.ctx.create_remote("visits", visit_id, visit_payload)
        except ClientError:
            for study_id, _ in study_payloads:
                self.state.mark(study_id, SyncStatus.FAILED)
            raise
        failed = []
        for study_id, payload in study_payloads:
            try:
                self.ctx.create_remote("studies", study_id, payload)
            except ClientError as e:
                logger.error(f"Study {study_id} failed to sync: {e.message}")
                failed.append(study_id)
        if failed:
            raise ClientError(f"{len(failed)} of {len(study_payloads)} studies failed to sync")

    # Reports

    @guarded()
    def view_report(self, study_id: str) -> Dict[str, Any]:
        model = self.report_model(self.get_study(study_id))
        self.ui.show_modal("report", model)
        return model

    @guarded()
    def print_report(self, study_id: str) -> Dict[str, Any]:
        model = self.report_model(self.get_study(study_id))
        self.ui.print_report(model)
        return model

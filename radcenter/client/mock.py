"""
In-memory mock backend used when no backend URL is configured.

It answers the same actions as the real endpoint, over an httpx
MockTransport, against a small demo dataset held in memory.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import copy
import json
import logging
import time

import httpx

from ..core import ids
from ..core.security import hash_pin
from ..exceptions import InvalidTransitionException
from ..workflow import StudyStatus, check_transition, status_after_report_save

logger = logging.getLogger(__name__)


def demo_dataset() -> Dict[str, List[Dict[str, Any]]]:
    """
    Demo records. PINs: admin 1234, reception 1111, technician 2222,
    radiologists 3333 and 4444.
    """
    return {
        "patients": [
            {"id": "PT-101", "full_name": "Ahmed Khaled", "dob": "1985-04-12", "age": "", "gender": "Male",
             "phone": "0599123456", "complaint": "Abdominal pain", "diagnosis": "", "medical_history": "",
             "created_at": "2023-10-27T08:50:00"},
            {"id": "PT-102", "full_name": "Sara Nour", "dob": "1992-08-23", "age": "", "gender": "Female",
             "phone": "0599654321", "complaint": "", "diagnosis": "", "medical_history": "",
             "created_at": "2023-10-27T08:55:00"},
        ],
        "visits": [
            {"id": "VS-501", "patient_id": "PT-101", "status": "In Progress", "check_in_time": "2023-10-27T09:00:00",
             "referrer_doctor": "Dr. House", "assigned_doctor_id": "USR-4", "created_at": "2023-10-27T09:00:00"},
        ],
        "studies": [
            {"id": "ST-901", "visit_id": "VS-501", "modality": "US", "region": "Abdomen",
             "study_name": "US Abdomen Complete", "assigned_doctor_id": "USR-4", "status": "Reporting",
             "report_content": "", "image_links": "", "technician": "Tech1", "completed_at": "",
             "created_at": "2023-10-27T09:15:00"},
            {"id": "ST-902", "visit_id": "VS-501", "modality": "XR", "region": "Chest",
             "study_name": "Chest X-Ray PA", "assigned_doctor_id": "USR-4", "status": "Waiting",
             "report_content": "", "image_links": "", "technician": "", "completed_at": "",
             "created_at": "2023-10-27T09:20:00"},
        ],
        "templates": [],
        "users": [
            {"id": "USR-1", "email": "admin@radcenter.local", "full_name": "System Administrator", "role": "Admin",
             "pin": hash_pin("1234"), "created_at": "2023-10-01T00:00:00"},
            {"id": "USR-2", "email": "reception@radcenter.local", "full_name": "Mona Reception", "role": "Reception",
             "pin": hash_pin("1111"), "created_at": "2023-10-01T00:00:00"},
            {"id": "USR-3", "email": "tech@radcenter.local", "full_name": "Omar Technician", "role": "Technician",
             "pin": hash_pin("2222"), "created_at": "2023-10-01T00:00:00"},
            {"id": "USR-4", "email": "layla@radcenter.local", "full_name": "Dr. Layla Hassan", "role": "Radiologist",
             "pin": hash_pin("3333"), "created_at": "2023-10-01T00:00:00"},
            {"id": "USR-5", "email": "yousef@radcenter.local", "full_name": "Dr. Yousef Saleh", "role": "Radiologist",
             "pin": hash_pin("4444"), "created_at": "2023-10-01T00:00:00"},
        ],
    }


CREATE_ACTIONS = {
    "createPatient": ("patients", ids.PATIENT_PREFIX),
    "createVisit": ("visits", ids.VISIT_PREFIX),
    "createStudy": ("studies", ids.STUDY_PREFIX),
    "createUser": ("users", ids.USER_PREFIX),
}


class MockBackend:
    """
    Action handler over an in-memory dataset.

    Attributes:
        data: Collections keyed by name
        latency: Seconds to sleep before each answer
        calls: (action, payload) pairs received, oldest first
    """

    def __init__(self, data: Optional[Dict[str, List[Dict[str, Any]]]] = None, latency: float = 0.0):
        self.data = data if data is not None else demo_dataset()
        self.latency = latency
        self.calls: List[tuple] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        """
        httpx MockTransport handler.
        """
        if self.latency:
            time.sleep(self.latency)
        action = request.url.params.get("action", "")
        try:
            payload = json.loads(request.content or b"{}")
        except ValueError:
            return httpx.Response(400, json={"status": "error", "message": "Body is not valid JSON"})
        logger.info(f"[MOCK API] {action}")
        self.calls.append((action, payload))
        try:
            data = self.dispatch(action, payload)
        except KeyError as e:
            return httpx.Response(404, json={"status": "error", "message": f"ID not found: {e.args[0]}"})
        except (ValueError, InvalidTransitionException) as e:
            return httpx.Response(400, json={"status": "error", "message": str(e)})
        if data is None:
            return httpx.Response(200, json={"status": "success"})
        return httpx.Response(200, json={"status": "success", "data": data})

    def _find(self, collection: str, record_id: str) -> Dict[str, Any]:
        for row in self.data.setdefault(collection, []):
            if row.get("id") == record_id:
                return row
        raise KeyError(record_id)

    def _create(self, collection: str, prefix: str, payload: Dict[str, Any]) -> Dict[str, str]:
        row = dict(payload)
        if not row.get("id"):
            row["id"] = f"{prefix}-MOCK-{int(time.time() * 1000)}-{len(self.data.get(collection, []))}"
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        if collection == "users":
            row["pin"] = hash_pin(row.get("pin", ""))
        if collection == "studies":
            row.setdefault("status", StudyStatus.WAITING.value)
        if isinstance(row.get("image_links"), list):
            row["image_links"] = json.dumps(row["image_links"])
        self.data.setdefault(collection, []).append(row)
        return {"id": row["id"]}

    def dispatch(self, action: str, payload: Dict[str, Any]) -> Any:
        if action == "getAllData":
            return copy.deepcopy(self.data)
        if action in CREATE_ACTIONS:
            collection, prefix = CREATE_ACTIONS[action]
            return self._create(collection, prefix, payload)
        if action == "updateStudyStatus":
            study = self._find("studies", payload.get("id"))
            study["status"] = check_transition(study.get("status"), payload.get("status")).value
            return None
        if action == "saveReport":
            study = self._find("studies", payload.get("study_id"))
            study["status"] = status_after_report_save(study.get("status")).value
            study["report_content"] = payload.get("content_html", "")
            return None
        if action == "markComplete":
            study = self._find("studies", payload.get("study_id"))
            study["status"] = check_transition(study.get("status"), StudyStatus.COMPLETED).value
            study["completed_at"] = datetime.now(timezone.utc).isoformat()
            return None
        if action == "updateImageLinks":
            study = self._find("studies", payload.get("study_id"))
            study["image_links"] = json.dumps(payload.get("image_links") or [])
            return None
        if action == "saveTemplate":
            template_id = payload.get("id")
            if template_id:
                try:
                    self._find("templates", template_id).update(payload)
                    return {"id": template_id}
                except KeyError:
                    pass
            return self._create("templates", ids.TEMPLATE_PREFIX, payload)
        if action == "deleteTemplate":
            self.data["templates"].remove(self._find("templates", payload.get("id")))
            return None
        raise ValueError(f"Unknown action: {action}")

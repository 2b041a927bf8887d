"""
Dispatcher Service - Maps an action name and JSON payload to one row store
operation.

Each handler validates its payload with the matching schema, performs the
operation and returns the value for the `data` field of the response (or
None for writes without a result).
"""
from typing import Any, Callable, Dict, Optional
from sqlalchemy.orm import Session
import logging

from ..core.security import hash_pin
from ..exceptions import UnknownActionException, InvalidPayloadException, RecordNotFoundException
from ..store import service as store
from ..workflow import StudyStatus, check_transition, status_after_report_save
from .schemas import (
    PatientCreate, VisitCreate, StudyCreate, UserCreate,
    StudyStatusUpdate, ReportSave, StudyReference, ImageLinksUpdate,
    TemplateSave, RecordReference
)

# Set up logging
logger = logging.getLogger(__name__)

Handler = Callable[[Session, Dict[str, Any]], Optional[Any]]


def _create(collection: str, schema) -> Handler:
    """
    Build a create handler for a collection.
    """
    def handler(db: Session, payload: Dict[str, Any]) -> Dict[str, str]:
        fields = schema(**payload).model_dump(mode="json", exclude_none=True)
        return {"id": store.create_row(db, collection, fields)}
    handler.__name__ = f"create_{collection}"
    return handler


def get_all_data(db: Session, payload: Dict[str, Any]) -> Dict[str, Any]:
    return store.get_all_data(db)


def create_user(db: Session, payload: Dict[str, Any]) -> Dict[str, str]:
    """
    Create a staff user. The PIN is hashed before it is stored.
    """
    fields = UserCreate(**payload).model_dump(mode="json", exclude_none=True)
    fields["pin"] = hash_pin(fields["pin"])
    return {"id": store.create_row(db, "users", fields)}


def update_study_status(db: Session, payload: Dict[str, Any]) -> None:
    """
    Move a study along the workflow.

    Raises:
        RecordNotFoundException: If the study does not exist
        InvalidTransitionException: If the move is not a legal edge
    """
    update = StudyStatusUpdate(**payload)
    study = store.find_row(db, "studies", update.id)
    check_transition(study.status, update.status)
    store.update_row(db, "studies", update.id, {"status": update.status.value})


def save_report(db: Session, payload: Dict[str, Any]) -> None:
    """
    Store report HTML and mark the study Reported (Completed studies stay Completed).
    """
    report = ReportSave(**payload)
    study = store.find_row(db, "studies", report.study_id)
    new_status = status_after_report_save(study.status)
    store.update_row(db, "studies", report.study_id, {
        "report_content": report.content_html,
        "status": new_status.value,
    })


def mark_complete(db: Session, payload: Dict[str, Any]) -> None:
    """
    Close a study: status Completed and completion timestamp.
    """
    reference = StudyReference(**payload)
    study = store.find_row(db, "studies", reference.study_id)
    check_transition(study.status, StudyStatus.COMPLETED)
    store.update_row(db, "studies", reference.study_id, {
        "status": StudyStatus.COMPLETED.value,
        "completed_at": store.now_iso(),
    })


def update_image_links(db: Session, payload: Dict[str, Any]) -> None:
    update = ImageLinksUpdate(**payload)
    store.update_row(db, "studies", update.study_id, {"image_links": update.image_links})


def save_template(db: Session, payload: Dict[str, Any]) -> Dict[str, str]:
    """
    Upsert a report template.

    Returns:
        Dict: {"id": template id}
    """
    fields = TemplateSave(**payload).model_dump(mode="json", exclude_none=True)
    template_id = fields.get("id")
    if template_id:
        try:
            store.find_row(db, "templates", template_id)
        except RecordNotFoundException:
            return {"id": store.create_row(db, "templates", fields)}
        store.update_row(db, "templates", template_id, fields)
        return {"id": template_id}
    return {"id": store.create_row(db, "templates", fields)}


def delete_template(db: Session, payload: Dict[str, Any]) -> None:
    store.delete_row(db, "templates", RecordReference(**payload).id)


# Action name -> handler
ACTIONS: Dict[str, Handler] = {
    "getAllData": get_all_data,
    "createPatient": _create("patients", PatientCreate),
    "createVisit": _create("visits", VisitCreate),
    "createStudy": _create("studies", StudyCreate),
    "createUser": create_user,
    "updateStudyStatus": update_study_status,
    "saveReport": save_report,
    "markComplete": mark_complete,
    "updateImageLinks": update_image_links,
    "saveTemplate": save_template,
    "deleteTemplate": delete_template,
}

# Actions that may be served over GET
READ_ONLY_ACTIONS = {"getAllData"}


def dispatch(db: Session, action: str, payload: Any) -> Optional[Any]:
    """
    Run one action.

    Args:
        db: Database session
        action: Action name from the query string
        payload: Decoded JSON body

    Returns:
        The `data` value for the success envelope, or None

    Raises:
        UnknownActionException: If the action is not supported
        InvalidPayloadException: If the body is not a JSON object
    """
    handler = ACTIONS.get(action)
    if handler is None:
        raise UnknownActionException(action)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidPayloadException("Request body must be a JSON object")
    logger.info(f"Dispatching {action}")
    return handler(db, payload)

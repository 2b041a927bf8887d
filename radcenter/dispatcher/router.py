"""
Dispatcher Router - The single action endpoint.

    POST /exec?action=<name>   body: JSON object (application/json or text/plain)
    GET  /exec?action=getAllData

Responses are {"status": "success", "data": ...} or the error envelope
produced by the exception handlers.
"""
from typing import Any, Dict
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
import json
import logging

from ..database import get_db
from ..core.lock import get_request_lock
from ..exceptions import InvalidPayloadException, UnknownActionException
from .service import dispatch, READ_ONLY_ACTIONS

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter()


async def get_payload(request: Request) -> Any:
    """
    Decode the request body as JSON.

    The body is read raw so clients may send text/plain and skip CORS
    preflight. An empty body is an empty object.

    Raises:
        InvalidPayloadException: If the body is not valid JSON
    """
    body = await request.body()
    if not body or not body.strip():
        return {}
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidPayloadException(f"Body is not valid JSON: {str(e)}")


def envelope(data: Any) -> Dict[str, Any]:
    if data is None:
        return {"status": "success"}
    return {"status": "success", "data": data}


@router.post("/exec")
def exec_action(
    action: str = Query(..., description="Action name, e.g. getAllData"),
    payload: Any = Depends(get_payload),
    db: Session = Depends(get_db),
    lock_held: bool = Depends(get_request_lock)
):
    """
    Run an action against the row store.

    The shared advisory lock is held for the duration of the request when it
    could be acquired in time.
    """
    return envelope(dispatch(db, action, payload))


@router.get("/exec")
def exec_read_action(
    action: str = Query(..., description="Read-only action name"),
    db: Session = Depends(get_db),
    lock_held: bool = Depends(get_request_lock)
):
    """
    Run a read-only action over GET.
    """
    if action not in READ_ONLY_ACTIONS:
        raise UnknownActionException(action)
    return envelope(dispatch(db, action, {}))

"""
Custom middleware for the FastAPI application.
"""
import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import uuid

from .lock import LOCK_STATE

# Set up logging
logger = logging.getLogger(__name__)


def lock_label(request: Request) -> str:
    held = getattr(request.state, LOCK_STATE, None)
    if held is None:
        return "none"
    return "held" if held else "skipped"


class ActionLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line per action call: action name, whether the advisory lock
    was held, outcome and duration. Tags the response with X-Request-ID,
    X-Process-Time and X-Lock.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        action = request.query_params.get("action") or request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] {request.method} {action} crashed after "
                f"{time.perf_counter() - started:.4f}s (lock {lock_label(request)}): {str(e)}"
            )
            raise

        elapsed = time.perf_counter() - started
        lock = lock_label(request)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.6f}"
        response.headers["X-Lock"] = lock

        outcome = "ok" if response.status_code < 400 else "error"
        log = logger.info if outcome == "ok" else logger.warning
        log(f"[{request_id}] {request.method} {action} -> {response.status_code} {outcome} in {elapsed:.4f}s (lock {lock})")
        if lock == "skipped":
            logger.warning(f"[{request_id}] {action} ran without the advisory lock")
        return response


def setup_middlewares(app):
    """
    Set up all custom middlewares for the application.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(ActionLoggingMiddleware)

"""
Best-effort advisory lock shared by every request to this process.

A request that cannot get the lock within the timeout proceeds anyway, so the
lock narrows race windows but never guarantees mutual exclusion.
"""
import logging
import threading
from contextlib import contextmanager
from fastapi import Request

from ..config import settings

logger = logging.getLogger(__name__)


class AdvisoryLock:
    """
    Lock with a bounded wait.

    Attributes:
        timeout: Seconds to wait before admitting the caller without the lock
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._lock = threading.Lock()

    @contextmanager
    def hold(self):
        """
        Acquire for the duration of the block.

        Yields:
            bool: True if the lock is actually held
        """
        acquired = self._lock.acquire(timeout=self.timeout)
        if not acquired:
            logger.warning(f"Advisory lock not acquired after {self.timeout}s, proceeding without it")
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()


# request.state attribute read by the logging middleware
LOCK_STATE = "lock_held"

request_lock = AdvisoryLock(timeout=settings.request_lock_timeout_seconds)


def get_request_lock(request: Request):
    """
    Request lock dependency - holds the shared lock while the request runs
    and records on the request whether it was actually held.
    """
    with request_lock.hold() as acquired:
        setattr(request.state, LOCK_STATE, acquired)
        yield acquired

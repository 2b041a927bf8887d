"""
Background sync executor.

Writes to the backend run after the local state has already changed. They
are fire-and-forget: never retried, never cancelled, and a failure is only
logged. A single worker keeps them in submission order.
"""
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, Set
import logging
import threading

logger = logging.getLogger(__name__)


class ImmediateExecutor(Executor):
    """
    Executor that runs each job in the caller's thread before returning.
    """

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


class BackgroundSync:
    """
    Queue of background writes.

    Attributes:
        executor: Where jobs run; a single-thread pool by default
    """

    def __init__(self, executor: Optional[Executor] = None):
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="radcenter-sync")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        """Number of jobs not finished yet."""
        with self._lock:
            return len(self._pending)

    def submit(self, description: str, fn: Callable[..., Any], *args, **kwargs) -> Future:
        """
        Schedule a write.

        Args:
            description: Used in log lines
            fn: Job to run

        Returns:
            Future: Resolves to the job result, or None if it failed
        """
        future = self.executor.submit(self._run, description, fn, *args, **kwargs)
        with self._lock:
            self._pending.add(future)
        # Runs at once when the job already finished
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _run(self, description: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            logger.error(f"Background sync failed ({description}): {str(e)}")
            return None
        logger.info(f"Background sync complete ({description})")
        return result

    def flush(self, timeout: Optional[float] = None) -> None:
        """
        Wait for every submitted job to finish.
        """
        with self._lock:
            waiting = list(self._pending)
        for future in waiting:
            future.result(timeout=timeout)

    def shutdown(self) -> None:
        self.flush()
        self.executor.shutdown(wait=True)

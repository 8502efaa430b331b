"""Fire-and-forget background work.

Tasks run on a small thread pool. Failures are logged and never reach the
code that submitted the task.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Background task queue backed by a ThreadPoolExecutor."""

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="alignment-task")
        self._pending: set[Future] = set()
        self._lock = Lock()

    def submit(self, name: str, func: Callable[..., Any], *args, **kwargs) -> Future:
        """Schedule ``func`` and return immediately."""
        future = self._executor.submit(func, *args, **kwargs)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(lambda f: self._finished(name, f))
        return future

    def _finished(self, name: str, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            logger.info("Background task %s was cancelled", name)
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "Background task %s failed: %s", name, error,
                exc_info=(type(error), error, error.__traceback__),
            )

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for submitted tasks. Returns True when none are left running."""
        with self._lock:
            pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from concurrent import futures
from typing import Any

from ..exceptions import WorkerPoolClosedError, WriteTimeoutError

"""Fixed-size worker pool with a per-phase completion barrier.

One pool serves the whole export run. Each table's write phase submits its
partition tasks, then calls await_completion(), which joins exactly the tasks
submitted since the previous barrier. The pool is shut down once, after the
last table; submitting afterwards is a usage error.

Python threads cannot be interrupted, so cancellation is cooperative: every
phase owns a threading.Event that write tasks poll between rows. On timeout
the event is set and queued futures are cancelled.
"""

__all__ = [
    "WorkerPool",
    "default_worker_count",
]

logger = logging.getLogger(__name__)


def default_worker_count() -> int:
    """Available parallelism (logical CPUs), at least 1."""
    return os.cpu_count() or 1


class WorkerPool:
    """Bounded-parallelism executor reusable across independent write phases."""

    def __init__(self, max_workers: int | None = None, *, thread_name_prefix: str = "sheet-writer") -> None:
        self.max_workers = max_workers if max_workers is not None else default_worker_count()
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        self._executor = futures.ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix=thread_name_prefix
        )
        self._pending: list[futures.Future[Any]] = []
        self._cancel_event = threading.Event()
        self._closed = False
        self._aborted = False  # a phase timed out; threads may still be busy

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancel_event(self) -> threading.Event:
        """Cancellation flag of the current phase; pass it to the tasks you submit."""
        return self._cancel_event

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> futures.Future[Any]:
        """Queue a task for the current phase. Never blocks beyond queueing."""
        if self._closed:
            raise WorkerPoolClosedError("cannot submit to a worker pool that has been shut down")
        fut = self._executor.submit(fn, *args, **kwargs)
        self._pending.append(fut)
        return fut

    def await_completion(self, timeout: float) -> list[Any]:
        """Completion barrier for the tasks submitted since the last barrier.

        Returns:
            task results in submission order

        Raises:
            WriteTimeoutError: not every task finished within ``timeout`` seconds;
                the phase's cancel event is set and queued tasks are cancelled
            Exception: the first task failure (in submission order) is re-raised
        """
        pending, self._pending = self._pending, []
        cancel_event, self._cancel_event = self._cancel_event, threading.Event()

        done, not_done = futures.wait(pending, timeout=timeout)
        if not_done:
            cancel_event.set()
            cancelled = sum(1 for f in not_done if f.cancel())
            self._aborted = True
            logger.debug(
                "barrier timeout=%ss finished=%d unfinished=%d cancelled_queued=%d",
                timeout,
                len(done),
                len(not_done),
                cancelled,
            )
            raise WriteTimeoutError(timeout, finished=len(done), unfinished=len(not_done))

        return [f.result() for f in pending]

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work. Idempotent.

        After a timed-out phase the pool does not wait for stuck tasks and
        drops anything still queued.
        """
        if self._closed:
            return
        self._closed = True
        if self._aborted:
            self._executor.shutdown(wait=False, cancel_futures=True)
        else:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        # Drop queued work when leaving on an error; the phase is abandoned anyway.
        if exc_type is not None and not self._closed:
            self._cancel_event.set()
            for f in self._pending:
                f.cancel()
            self._pending = []
            self._aborted = True
        self.shutdown()

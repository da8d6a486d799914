"""
Background work for GameShelf.

Scans, saves and launches run on daemon threads so the UI never blocks on
disk or process I/O. Workers never touch the library; each one puts a
TaskResult on a single queue that the owning thread drains.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class TaskResult:
    kind: str                                # "import", "save", "launch", "session", "rescan"
    key: str
    value: Any = None
    error: Optional[BaseException] = None
    context: Any = None                      # Whatever the submitter needs to apply the result

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskRunner:
    """Runs one task per key at a time and reports results on a queue."""

    def __init__(self, results: Optional[queue.Queue] = None):
        self.results: queue.Queue = results if results is not None else queue.Queue()
        self._busy: dict[str, threading.Thread] = {}
        self._lock = threading.Lock()

    def submit(self, key: str, fn: Callable[..., Any], *args,
               kind: str = "task", context: Any = None, exclusive: bool = True) -> bool:
        """
        Start `fn(*args)` on a worker thread.

        Returns False without starting anything if an exclusive task with
        the same key is still running. Non-exclusive tasks are not tracked
        and are not waited for by wait_idle().
        """
        with self._lock:
            if exclusive and key in self._busy:
                logger.debug(f"Task {key} already running")
                return False

            thread = threading.Thread(
                target=self._run,
                args=(key, fn, args, kind, context, exclusive),
                name=f"task-{key}",
                daemon=True,
            )
            if exclusive:
                self._busy[key] = thread
            thread.start()
            return True

    def _run(self, key: str, fn: Callable[..., Any], args: tuple, kind: str,
             context: Any, exclusive: bool) -> None:
        result = TaskResult(kind=kind, key=key, context=context)
        try:
            result.value = fn(*args)
        except Exception as e:
            logger.debug(f"Task {key} failed: {e}")
            result.error = e
        finally:
            # Queued before the key frees up, so wait_idle() implies delivery
            with self._lock:
                if exclusive:
                    self._busy.pop(key, None)
                self.results.put(result)

    def post(self, result: TaskResult) -> None:
        """Queue a result produced outside the runner (e.g. a watcher thread)."""
        self.results.put(result)

    def is_busy(self, key: str) -> bool:
        with self._lock:
            return key in self._busy

    def busy_keys(self) -> list[str]:
        with self._lock:
            return list(self._busy.keys())

    def drain(self) -> list[TaskResult]:
        items = []
        try:
            while True:
                items.append(self.results.get_nowait())
        except queue.Empty:
            pass
        return items

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for every exclusive task to finish. Returns False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                threads = list(self._busy.values())
            if not threads:
                return True
            for thread in threads:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)
            if deadline is not None and time.monotonic() >= deadline:
                with self._lock:
                    return not self._busy

"""
Module: tasks

Purpose:
    Run long computations (catalog load, schedule search) on worker threads
    and hand their effects to a single consumer.

Key Classes:
    - TaskQueue: thread pool plus an ordered message queue
    - TaskHandle: one submitted computation, disposable from the consumer

Rules:
    - one running computation per target ("load", "search", ...); different
      targets may run concurrently
    - workers never touch application state; they only enqueue messages
    - the consumer applies messages in the order each worker produced them
      by calling drain()
    - after dispose(), queued progress messages of that task are dropped;
      completion and failure are still delivered
    - there is no way to interrupt a running computation

Usage:
    tasks = TaskQueue()
    tasks.submit("search", lambda report: scheduler.search(..., progress=report),
                 on_done=show_results, on_progress=bar.update)
    ...
    tasks.drain()          # from the UI idle loop
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from ttime.errors import TaskAlreadyRunning

logger = logging.getLogger(__name__)

ProgressFn = Callable[[Optional[float], str], None]
WorkFn = Callable[[ProgressFn], Any]

_CALL = "call"
_PROGRESS = "progress"
_DONE = "done"
_FAILED = "failed"


@dataclass(eq=False)
class TaskHandle:
    target: str
    on_done: Optional[Callable[[Any], None]] = None
    on_progress: Optional[ProgressFn] = None
    on_error: Optional[Callable[[BaseException], None]] = None
    on_dispose: Optional[Callable[[], None]] = None
    future: Optional[Future] = field(default=None, repr=False)
    disposed: bool = False
    finished: bool = False

    def dispose(self) -> None:
        """
        Stop applying progress for this task. Call from the consumer only.
        """
        if self.disposed:
            return
        self.disposed = True
        if self.on_dispose is not None:
            self.on_dispose()


class TaskQueue:
    def __init__(self, max_workers: int = 2) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ttime-worker")
        self._messages: "queue.Queue[Tuple[str, Optional[TaskHandle], Any]]" = queue.Queue()
        self._lock = threading.Lock()
        self._running: Dict[str, TaskHandle] = {}

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def post(self, fn: Callable[[], None]) -> None:
        """Run fn on the consumer at the next drain()."""
        self._messages.put((_CALL, None, fn))

    def submit(
        self,
        target: str,
        work: WorkFn,
        on_done: Optional[Callable[[Any], None]] = None,
        on_progress: Optional[ProgressFn] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        on_dispose: Optional[Callable[[], None]] = None,
    ) -> TaskHandle:
        """
        Start work(report) on a worker thread.

        Raises TaskAlreadyRunning if the target still has an unfinished task
        (a task is finished once its completion has been drained).
        """
        handle = TaskHandle(
            target=target,
            on_done=on_done,
            on_progress=on_progress,
            on_error=on_error,
            on_dispose=on_dispose,
        )
        with self._lock:
            if target in self._running:
                raise TaskAlreadyRunning(target)
            self._running[target] = handle

        def report(fraction: Optional[float], text: str = "") -> None:
            self._messages.put((_PROGRESS, handle, (fraction, text)))

        def run() -> None:
            try:
                result = work(report)
            except BaseException as e:
                self._messages.put((_FAILED, handle, e))
                if not isinstance(e, Exception):
                    raise
            else:
                self._messages.put((_DONE, handle, result))

        logger.debug("Starting %s task", target)
        handle.future = self._executor.submit(run)
        return handle

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def busy(self, target: Optional[str] = None) -> bool:
        with self._lock:
            if target is None:
                return bool(self._running)
            return target in self._running

    def _release(self, handle: TaskHandle) -> None:
        handle.finished = True
        with self._lock:
            if self._running.get(handle.target) is handle:
                del self._running[handle.target]

    def _apply(self, message: Tuple[str, Optional[TaskHandle], Any]) -> int:
        kind, handle, payload = message

        if kind == _CALL:
            payload()
            return 1

        assert handle is not None

        if kind == _PROGRESS:
            if handle.disposed or handle.on_progress is None:
                return 0
            fraction, text = payload
            handle.on_progress(fraction, text)
            return 1

        handle.dispose()
        self._release(handle)

        if kind == _DONE:
            logger.info("%s task finished", handle.target.capitalize())
            if handle.on_done is not None:
                handle.on_done(payload)
            return 1

        logger.error(
            "%s task failed: %s",
            handle.target.capitalize(),
            payload,
            exc_info=(type(payload), payload, payload.__traceback__),
        )
        if handle.on_error is not None:
            handle.on_error(payload)
        return 1

    def drain(self, block: bool = False, timeout: Optional[float] = None) -> int:
        """
        Apply every queued message; return how many were applied.

        With block=True wait up to `timeout` seconds for the first message.
        """
        applied = 0
        if block:
            try:
                message = self._messages.get(timeout=timeout)
            except queue.Empty:
                return 0
            applied += self._apply(message)

        while True:
            try:
                message = self._messages.get_nowait()
            except queue.Empty:
                break
            applied += self._apply(message)
        return applied

    def wait_idle(self, timeout: Optional[float] = None, poll: float = 0.05) -> bool:
        """
        Drain until no task is running. Returns False on timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.busy():
            if deadline is not None and time.monotonic() >= deadline:
                return False
            self.drain(block=True, timeout=poll)
        self.drain()
        return True

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "TaskQueue":
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()

"""
Schedulers for the playback engine.

The engine never touches a clock directly. It asks a scheduler for one-shot
and periodic callbacks, and every implementation runs those callbacks one at
a time, so engine code never has to lock.

- ManualScheduler: virtual clock driven by ``advance_time``.
- AsyncioScheduler: callbacks on a running asyncio event loop.
- ThreadedScheduler: one worker thread running a heap of due tasks.
"""

import asyncio
import heapq
import itertools
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from ..infrastructure.monitoring.logging import get_logger

logger = get_logger(__name__)

Callback = Callable[[], None]


class Handle:
    """Cancellable reference to a scheduled callback."""

    def __init__(self, callback: Callback, interval: Optional[float] = None):
        self.callback = callback
        self.interval = interval
        self._cancelled = False
        self._on_cancel: Optional[Callback] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def periodic(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()


class Scheduler(ABC):
    """Source of time and deferred callbacks."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callback) -> Handle:
        """Run ``callback`` once, ``delay`` seconds from now."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callback) -> Handle:
        """Run ``callback`` every ``interval`` seconds until cancelled.

        The first call happens one interval from now.
        """


def _check_interval(interval: float) -> None:
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")


class _TaskQueue:
    """Heap of (due, seq, handle) shared by the manual and threaded schedulers."""

    def __init__(self):
        self._heap: List[Tuple[float, int, Handle]] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)

    def push(self, due: float, handle: Handle) -> None:
        heapq.heappush(self._heap, (due, next(self._counter), handle))

    def next_due(self) -> Optional[float]:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0][0] if self._heap else None

    def pop(self) -> Tuple[float, Handle]:
        due, _, handle = heapq.heappop(self._heap)
        return due, handle

    def clear(self) -> None:
        self._heap.clear()


class ManualScheduler(Scheduler):
    """Deterministic scheduler with a virtual clock.

    Nothing runs until ``advance_time`` is called. Callbacks then fire in due
    order, and the clock reads each callback's due time while it runs.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue = _TaskQueue()

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of live scheduled callbacks."""
        return len(self._queue)

    def call_later(self, delay: float, callback: Callback) -> Handle:
        handle = Handle(callback)
        self._queue.push(self._now + max(delay, 0.0), handle)
        return handle

    def call_every(self, interval: float, callback: Callback) -> Handle:
        _check_interval(interval)
        handle = Handle(callback, interval)
        self._queue.push(self._now + interval, handle)
        return handle

    def advance_time(self, seconds: float) -> int:
        """Move the clock forward, running everything that falls due.

        Returns:
            Number of callbacks run
        """
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")

        target = self._now + seconds
        ran = 0
        while True:
            due = self._queue.next_due()
            # Small tolerance so 0.25 * 4 lands on 1.0.
            if due is None or due > target + 1e-9:
                break
            due, handle = self._queue.pop()
            self._now = max(self._now, due)
            if handle.periodic:
                self._queue.push(due + handle.interval, handle)
            handle.callback()
            ran += 1

        self._now = max(self._now, target)
        return ran


class AsyncioScheduler(Scheduler):
    """Scheduler on an asyncio event loop.

    Periodic callbacks are re-armed against the time the task was created,
    so a late tick does not push every later tick back.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callback) -> Handle:
        handle = Handle(callback)
        timer = self.loop.call_later(max(delay, 0.0), self._run_once, handle)
        handle._on_cancel = timer.cancel
        return handle

    def _run_once(self, handle: Handle) -> None:
        if not handle.cancelled:
            handle.callback()

    def call_every(self, interval: float, callback: Callback) -> Handle:
        _check_interval(interval)
        handle = Handle(callback, interval)
        origin = self.loop.time()
        ticks = itertools.count(1)
        timer = None

        def arm() -> None:
            nonlocal timer
            timer = self.loop.call_at(origin + next(ticks) * interval, fire)

        def fire() -> None:
            if handle.cancelled:
                return
            arm()
            handle.callback()

        def cancel() -> None:
            if timer is not None:
                timer.cancel()

        handle._on_cancel = cancel
        arm()
        return handle


class ThreadedScheduler(Scheduler):
    """Scheduler backed by a single worker thread.

    All callbacks run on the worker thread, one at a time. Exceptions raised
    by a callback are logged and do not stop the worker.
    """

    def __init__(self, name: str = "mathemelody-scheduler"):
        self._queue = _TaskQueue()
        self._condition = threading.Condition()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._name = name

    def now(self) -> float:
        return time.monotonic()

    def start(self) -> "ThreadedScheduler":
        with self._condition:
            if self._running:
                return self
            self._running = True
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        return self

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        with self._condition:
            self._running = False
            self._queue.clear()
            self._condition.notify_all()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def __enter__(self) -> "ThreadedScheduler":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def _schedule(self, due: float, handle: Handle) -> Handle:
        with self._condition:
            self._queue.push(due, handle)
            self._condition.notify_all()
        return handle

    def call_later(self, delay: float, callback: Callback) -> Handle:
        return self._schedule(self.now() + max(delay, 0.0), Handle(callback))

    def call_every(self, interval: float, callback: Callback) -> Handle:
        _check_interval(interval)
        return self._schedule(self.now() + interval, Handle(callback, interval))

    def _run(self) -> None:
        while True:
            with self._condition:
                if not self._running:
                    return
                due = self._queue.next_due()
                if due is None:
                    self._condition.wait()
                    continue
                wait = due - self.now()
                if wait > 0:
                    self._condition.wait(wait)
                    continue
                due, handle = self._queue.pop()
                if handle.periodic:
                    self._queue.push(due + handle.interval, handle)

            # cancelled between leaving the queue and running
            if handle.cancelled:
                continue

            try:
                handle.callback()
            except Exception:
                logger.exception("Scheduled callback failed")

"""
Scheduled Tasks and Countdowns.

Controllers never sleep and never touch the Tk event loop directly.
They schedule work through a ``Scheduler``:

- ``TkScheduler`` wraps ``widget.after()`` / ``after_cancel()`` for the
  running application.
- ``ManualScheduler`` keeps a virtual clock that only moves when
  ``advance()`` is called, for headless runs and tests.

``Countdown`` builds the one-second resend cooldown on top of either.

Usage::

    scheduler = ManualScheduler()
    cooldown = Countdown(scheduler)
    cooldown.start(60, on_tick=print)
    scheduler.advance(15)
    assert cooldown.remaining == 45
"""

from __future__ import annotations

import heapq
import itertools
import threading
from typing import TYPE_CHECKING, Callable, Optional, Protocol

if TYPE_CHECKING:
    import tkinter

Callback = Callable[[], None]


class Scheduler(Protocol):
    """Cancellable delayed-call interface."""

    def call_later(self, delay_s: float, callback: Callback) -> object:
        """Run *callback* once after *delay_s* seconds; return a handle."""
        ...

    def cancel(self, handle: object) -> None:
        """Drop a pending call.  Unknown or already-run handles are ignored."""
        ...


class TkScheduler:
    """``Scheduler`` backed by the Tk event loop of *widget*."""

    def __init__(self, widget: tkinter.Misc) -> None:
        self._widget = widget

    def call_later(self, delay_s: float, callback: Callback) -> object:
        return self._widget.after(int(delay_s * 1000), callback)

    def cancel(self, handle: object) -> None:
        try:
            self._widget.after_cancel(handle)
        except ValueError:
            # Tk raises for handles that already fired.
            pass


class ManualScheduler:
    """Virtual-time ``Scheduler``.

    Calls run, in due-time order, only from inside ``advance()``.  A call
    scheduled by another call runs in the same ``advance()`` if it falls
    due before the target time.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._now: float = 0.0
        self._seq = itertools.count()
        self._queue: list[tuple[float, int, Callback]] = []
        self._cancelled: set[int] = set()

    @property
    def now(self) -> float:
        """Seconds elapsed on the virtual clock."""
        return self._now

    @property
    def pending(self) -> int:
        """Number of scheduled, not yet cancelled calls."""
        with self._lock:
            return sum(1 for _, seq, _ in self._queue if seq not in self._cancelled)

    def call_later(self, delay_s: float, callback: Callback) -> object:
        with self._lock:
            handle = next(self._seq)
            heapq.heappush(self._queue, (self._now + max(delay_s, 0.0), handle, callback))
            return handle

    def cancel(self, handle: object) -> None:
        with self._lock:
            if isinstance(handle, int):
                self._cancelled.add(handle)

    def advance(self, seconds: float) -> None:
        """Move the clock forward by *seconds*, running every call that falls due."""
        target = self._now + seconds
        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                due, handle, callback = heapq.heappop(self._queue)
                self._now = due
                if handle in self._cancelled:
                    self._cancelled.discard(handle)
                    continue
            callback()
        self._now = target


class Countdown:
    """Whole-second countdown driven by a ``Scheduler``.

    ``remaining`` drops by exactly one per tick and never goes below
    zero.  At zero the countdown stops itself and fires ``on_elapsed``.
    Starting a running countdown replaces it: the old ticks are
    abandoned, not added to the new duration.
    """

    def __init__(self, scheduler: Scheduler, interval_s: float = 1.0) -> None:
        self._scheduler = scheduler
        self._interval_s = interval_s
        self._lock = threading.Lock()
        self._remaining: int = 0
        self._handle: Optional[object] = None
        self._generation: int = 0
        self._on_tick: Optional[Callable[[int], None]] = None
        self._on_elapsed: Optional[Callback] = None

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._handle is not None

    def start(
        self,
        seconds: int,
        on_tick: Optional[Callable[[int], None]] = None,
        on_elapsed: Optional[Callback] = None,
    ) -> None:
        """(Re)start the countdown at *seconds*."""
        with self._lock:
            self._cancel_locked()
            self._remaining = max(int(seconds), 0)
            self._on_tick = on_tick
            self._on_elapsed = on_elapsed
            if self._remaining > 0:
                self._schedule_locked()
                return
        if on_elapsed is not None:
            on_elapsed()

    def cancel(self) -> None:
        """Stop ticking and reset ``remaining`` to zero without firing ``on_elapsed``."""
        with self._lock:
            self._cancel_locked()
            self._remaining = 0

    def _schedule_locked(self) -> None:
        generation = self._generation
        self._handle = self._scheduler.call_later(
            self._interval_s, lambda: self._tick(generation),
        )

    def _cancel_locked(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None

    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._remaining = max(self._remaining - 1, 0)
            remaining = self._remaining
            on_tick = self._on_tick
            on_elapsed = self._on_elapsed
            if remaining > 0:
                self._schedule_locked()
            else:
                self._handle = None
        if on_tick is not None:
            on_tick(remaining)
        if remaining == 0 and on_elapsed is not None:
            on_elapsed()

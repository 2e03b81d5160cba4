"""
In-flight Operation Guards.

Each controller operation that talks to the network owns an
``OperationGuard``.  The guard is an explicit ``idle → pending → done``
state machine: a second submission while the first is ``pending`` is
rejected, so a double click can never issue two signup challenges or two
session tokens.

Usage::

    guard = OperationGuard("signup")
    if not guard.try_begin():
        return duplicate_result
    try:
        ...
    finally:
        guard.finish()
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from sensorwatch.models.enums import OperationState


class OperationGuard:
    """Thread-safe single-flight guard for one named operation."""

    def __init__(self, name: str) -> None:
        self._name: str = name
        self._lock: threading.Lock = threading.Lock()
        self._state: OperationState = OperationState.IDLE

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> OperationState:
        with self._lock:
            return self._state

    @property
    def is_pending(self) -> bool:
        return self.state is OperationState.PENDING

    def try_begin(self) -> bool:
        """Move to ``PENDING``; return ``False`` if already pending."""
        with self._lock:
            if self._state is OperationState.PENDING:
                return False
            self._state = OperationState.PENDING
            return True

    def finish(self) -> None:
        """Mark the current attempt ``DONE``; a new attempt may begin."""
        with self._lock:
            self._state = OperationState.DONE

    def reset(self) -> None:
        """Return to ``IDLE`` when a flow restarts from scratch.

        A pending attempt is left alone; its owner still calls ``finish()``.
        """
        with self._lock:
            if self._state is not OperationState.PENDING:
                self._state = OperationState.IDLE

    @contextmanager
    def claim(self) -> Iterator[bool]:
        """Context-manager form: yields whether the caller owns the attempt.

        ``finish()`` runs on exit only when the claim succeeded, so a
        rejected caller never releases someone else's attempt.
        """
        acquired = self.try_begin()
        try:
            yield acquired
        finally:
            if acquired:
                self.finish()

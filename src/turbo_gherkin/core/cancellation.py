"""
Cancellation checks for full-document scans.

A cancellation check is any zero-argument callable returning True when the
running request should stop. Scans call ``check_cancelled`` once per line.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from .errors import OperationCancelled

CancelCheck = Callable[[], bool]


class Deadline:
    """Cancellation check that fires once a monotonic time budget is spent."""

    def __init__(self, expires_at: float, clock: Callable[[], float] = time.monotonic):
        self.expires_at = expires_at
        self._clock = clock

    @classmethod
    def after(cls, seconds: float, clock: Callable[[], float] = time.monotonic) -> Deadline:
        return cls(clock() + seconds, clock)

    def __call__(self) -> bool:
        return self._clock() >= self.expires_at


def check_cancelled(cancel: CancelCheck | None, operation: str, line: int) -> None:
    if cancel is not None and cancel():
        raise OperationCancelled(operation, line)

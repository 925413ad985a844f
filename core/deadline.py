"""
core/deadline.py -- Per-call cancellation deadlines.

A Deadline is an absolute point on the monotonic clock. The transport layer
builds one per request and passes it down; AuthService and the store call
check() between steps so an expired call stops promptly instead of finishing
work nobody is waiting for.

Layer rule: core/ may not import from api/ or auth/.
"""

from __future__ import annotations

import math
import time


class DeadlineExceededError(Exception):
    """Raised by Deadline.check() once the deadline has passed."""

    def __init__(self, op: str) -> None:
        super().__init__(f"{op}: deadline exceeded")
        self.op = op


class Deadline:
    """Monotonic expiry for a single call.

    Usage:
        deadline = Deadline.after(5.0)
        deadline.check("auth.Login")   # raises DeadlineExceededError when expired
    """

    __slots__ = ("_expires_at",)

    def __init__(self, expires_at: float) -> None:
        self._expires_at = expires_at

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(time.monotonic() + seconds)

    @classmethod
    def never(cls) -> Deadline:
        return cls(math.inf)

    def remaining(self) -> float:
        """Seconds left, never negative. math.inf for Deadline.never()."""
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    def check(self, op: str) -> None:
        if self.expired():
            raise DeadlineExceededError(op)

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.3f}s)"

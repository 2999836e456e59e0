from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from ..core.exceptions import OperationCancelledError


@dataclass(frozen=True)
class Deadline:
    """Time budget and cancellation token for one blocking operation.

    ``expires_at`` is a ``time.monotonic()`` value; ``None`` means no time
    limit, only explicit cancellation. The store checks the deadline before
    each statement and bounds lock waits by ``remaining()``.
    """

    expires_at: Optional[float] = None
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False, compare=False)

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(expires_at=time.monotonic() + float(seconds))

    @classmethod
    def none(cls) -> "Deadline":
        return cls(expires_at=None)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def remaining_whole_seconds(self) -> Optional[int]:
        """Remaining budget rounded up, never below one second (MySQL timeouts are integral)."""
        remaining = self.remaining()
        if remaining is None:
            return None
        return max(1, int(math.ceil(remaining)))

    def check(self) -> None:
        if self.cancelled:
            raise OperationCancelledError("Operation cancelled by caller")
        if self.expired():
            raise OperationCancelledError("Deadline exceeded")


def check_deadline(deadline: Optional[Deadline]) -> None:
    if deadline is not None:
        deadline.check()

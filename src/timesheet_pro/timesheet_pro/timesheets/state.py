"""Clock state machine.

A user is either clocked in (since the last ``in`` entry) or clocked out
(since the last ``out`` entry, or never clocked today). The state is always
derived from the entries; the persisted timesheet status plays no part.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Union

from ..core.enums import EntryType
from .model import TimesheetEntry


@dataclass(frozen=True)
class ClockedIn:
    since: datetime

    @property
    def status(self) -> str:
        return EntryType.IN.value


@dataclass(frozen=True)
class ClockedOut:
    since: Optional[datetime] = None

    @property
    def status(self) -> str:
        return EntryType.OUT.value


ClockState = Union[ClockedIn, ClockedOut]


def next_entry_type(entry_count: int) -> EntryType:
    """Type of the entry appended after ``entry_count`` existing ones."""
    return EntryType.IN if entry_count % 2 == 0 else EntryType.OUT


def derive_clock_state(entries: Sequence[TimesheetEntry]) -> ClockState:
    if not entries:
        return ClockedOut()

    # stable sort keeps insertion order for identical timestamps
    last = sorted(entries, key=lambda e: e.timestamp)[-1]
    if last.entry_type == EntryType.IN:
        return ClockedIn(since=last.timestamp)
    return ClockedOut(since=last.timestamp)


def ordered_timestamp(now: datetime, last: Optional[datetime]) -> datetime:
    """Timestamp for a new entry: never earlier than the last stored one.

    ``now`` is read before the per-day lock is taken, so a request that waited
    on the lock can carry an older clock reading than the entry written just
    before it. Clamping keeps timestamp order equal to append order.
    """
    if last is not None and last > now:
        return last
    return now

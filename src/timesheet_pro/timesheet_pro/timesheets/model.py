from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ..core.enums import EntryType, TimesheetStatus


@dataclass(frozen=True)
class TimesheetEntry:
    """One clock event. Entries are append-only."""

    entry_id: uuid.UUID
    timesheet_id: uuid.UUID
    organization_id: uuid.UUID
    entry_type: EntryType
    timestamp: datetime


@dataclass(frozen=True)
class DailyTimesheet:
    """One user's record for one calendar day.

    ``entries`` is ordered by timestamp ascending. ``user_name`` and
    ``user_email`` are display fields joined from the users table.
    """

    timesheet_id: uuid.UUID
    user_id: uuid.UUID
    organization_id: uuid.UUID
    work_date: date
    status: TimesheetStatus
    total_minutes: int
    created_at: datetime
    entries: Tuple[TimesheetEntry, ...] = ()
    user_name: Optional[str] = None
    user_email: Optional[str] = None

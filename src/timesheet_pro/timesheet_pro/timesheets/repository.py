from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Callable, Optional, Protocol, Sequence

from ..common.deadline import Deadline
from ..core.enums import EntryType
from .model import DailyTimesheet, TimesheetEntry


class TimesheetRepository(Protocol):
    """Persistence for daily timesheets and their entries.

    Every read returns timesheets with their entries attached (ascending
    by timestamp). List reads return an empty sequence, never ``None``.
    """

    def get_for_user_and_date(
        self,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        work_date: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Optional[DailyTimesheet]:
        raise NotImplementedError

    def list_for_user_between(
        self,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        start_date: date,
        end_date: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Sequence[DailyTimesheet]:
        """Inclusive on both ends, newest day first."""

        raise NotImplementedError

    def list_for_organization_and_date(
        self,
        organization_id: uuid.UUID,
        work_date: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Sequence[DailyTimesheet]:
        """Ordered by the owning user's name."""

        raise NotImplementedError

    def get_by_id(self, timesheet_id: uuid.UUID, *, deadline: Optional[Deadline] = None) -> Optional[DailyTimesheet]:
        raise NotImplementedError

    def append_clock_entry(
        self,
        *,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        work_date: date,
        timestamp: datetime,
        choose_type: Callable[[int], EntryType],
        deadline: Optional[Deadline] = None,
    ) -> TimesheetEntry:
        """Find-or-create the (user, work_date) timesheet and append one entry.

        Runs as one unit serialized per (user, work_date): ``choose_type``
        receives the number of entries already stored while the unit holds
        the lock, and its answer is the type of the appended entry. The stored
        timestamp is ``max(timestamp, last stored timestamp)`` so timestamp
        order always equals append order. Nothing is written if any step fails.
        """

        raise NotImplementedError

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import List, Optional

from ..common.datetime_utils import truncate_to_day
from ..common.deadline import Deadline
from ..core.exceptions import AuthorizationError, NotFoundError, OperationCancelledError, StorageError, ValidationError
from ..organizations.service import MembershipAuthority
from .model import DailyTimesheet, TimesheetEntry
from .repository import TimesheetRepository
from .state import ClockState, ClockedOut, derive_clock_state, next_entry_type

logger = logging.getLogger(__name__)


class ClockService:
    """Use case: clock in/out and report the current clock state."""

    def __init__(self, timesheets: TimesheetRepository, authority: MembershipAuthority):
        self._timesheets = timesheets
        self._authority = authority

    def clock_in_or_out(
        self,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        now: datetime,
        *,
        deadline: Optional[Deadline] = None,
    ) -> TimesheetEntry:
        """Append the next entry to today's timesheet.

        The entry type alternates by position (even count -> in, odd -> out);
        the timesheet is created on the first clock action of the day.
        """
        self._authority.require_member(user_id, organization_id, deadline=deadline)
        today = truncate_to_day(now)

        try:
            entry = self._timesheets.append_clock_entry(
                user_id=user_id,
                organization_id=organization_id,
                work_date=today,
                timestamp=now,
                choose_type=next_entry_type,
                deadline=deadline,
            )
        except OperationCancelledError:
            logger.warning("Clock action for user %s on %s cancelled; nothing written", user_id, today)
            raise
        except StorageError:
            logger.exception("Clock action for user %s on %s failed", user_id, today)
            raise

        logger.info(
            "User %s clocked %s in organization %s at %s",
            user_id,
            entry.entry_type.value,
            organization_id,
            entry.timestamp.isoformat(),
        )
        return entry

    def current_status(
        self,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        now: datetime,
        *,
        deadline: Optional[Deadline] = None,
    ) -> ClockState:
        self._authority.require_member(user_id, organization_id, deadline=deadline)

        timesheet = self._timesheets.get_for_user_and_date(
            user_id, organization_id, truncate_to_day(now), deadline=deadline
        )
        if not timesheet:
            return ClockedOut()
        return derive_clock_state(timesheet.entries)


class TimesheetQueryService:
    """Authorization-filtered timesheet reads. Never writes."""

    def __init__(self, timesheets: TimesheetRepository, authority: MembershipAuthority):
        self._timesheets = timesheets
        self._authority = authority

    def _authorize_user_read(
        self,
        requester_id: uuid.UUID,
        target_user_id: uuid.UUID,
        organization_id: uuid.UUID,
        deadline: Optional[Deadline],
    ) -> None:
        self._authority.require_member(requester_id, organization_id, deadline=deadline)
        if requester_id != target_user_id and not self._authority.is_admin(
            requester_id, organization_id, deadline=deadline
        ):
            logger.warning(
                "Denied: user %s tried to read timesheets of %s in organization %s",
                requester_id,
                target_user_id,
                organization_id,
            )
            raise AuthorizationError("Only organization admins can view other members' timesheets")

    def get_user_day(
        self,
        requester_id: uuid.UUID,
        target_user_id: uuid.UUID,
        organization_id: uuid.UUID,
        work_date: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> DailyTimesheet:
        self._authorize_user_read(requester_id, target_user_id, organization_id, deadline)

        timesheet = self._timesheets.get_for_user_and_date(
            target_user_id, organization_id, work_date, deadline=deadline
        )
        if not timesheet:
            raise NotFoundError(f"No timesheet for {work_date.isoformat()}")
        return timesheet

    def get_user_range(
        self,
        requester_id: uuid.UUID,
        target_user_id: uuid.UUID,
        organization_id: uuid.UUID,
        start: date,
        end: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> List[DailyTimesheet]:
        if start > end:
            raise ValidationError("Start date must not be after end date")
        self._authorize_user_read(requester_id, target_user_id, organization_id, deadline)

        rows = self._timesheets.list_for_user_between(
            target_user_id, organization_id, start, end, deadline=deadline
        )
        return list(rows or [])

    def get_organization_day(
        self,
        requester_id: uuid.UUID,
        organization_id: uuid.UUID,
        work_date: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> List[DailyTimesheet]:
        self._authority.require_admin(requester_id, organization_id, deadline=deadline)

        rows = self._timesheets.list_for_organization_and_date(organization_id, work_date, deadline=deadline)
        return list(rows or [])

    def get_by_id(
        self,
        requester_id: uuid.UUID,
        timesheet_id: uuid.UUID,
        *,
        deadline: Optional[Deadline] = None,
    ) -> DailyTimesheet:
        timesheet = self._timesheets.get_by_id(timesheet_id, deadline=deadline)
        if not timesheet:
            raise NotFoundError("Timesheet not found")

        if timesheet.user_id == requester_id:
            return timesheet
        if self._authority.is_admin(requester_id, timesheet.organization_id, deadline=deadline):
            return timesheet

        logger.warning("Denied: user %s tried to read timesheet %s", requester_id, timesheet_id)
        raise AuthorizationError("You are not allowed to view this timesheet")

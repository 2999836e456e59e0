from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

from ..common.deadline import Deadline, check_deadline
from ..core.enums import EntryType, TimesheetStatus
from ..core.exceptions import ConversionError, StorageError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, row_uuid, row_value
from .model import DailyTimesheet, TimesheetEntry
from .repository import TimesheetRepository
from .state import ordered_timestamp

logger = logging.getLogger(__name__)

_TIMESHEET_COLUMNS = """
    dt.id, dt.user_id, dt.organization_id, dt.work_date, dt.status,
    dt.total_minutes, dt.created_at,
    u.name AS user_name, u.email AS user_email
"""


def _to_status(value) -> TimesheetStatus:
    try:
        return TimesheetStatus(value)
    except ValueError as e:
        raise ConversionError(f"Unknown timesheet status: {value!r}") from e


def _to_entry_type(value) -> EntryType:
    try:
        return EntryType(value)
    except ValueError as e:
        raise ConversionError(f"Unknown entry type: {value!r}") from e


def _to_entry(r: dict) -> TimesheetEntry:
    return TimesheetEntry(
        entry_id=row_uuid(r, "id"),
        timesheet_id=row_uuid(r, "timesheet_id"),
        organization_id=row_uuid(r, "organization_id"),
        entry_type=_to_entry_type(row_value(r, "entry_type")),
        timestamp=row_value(r, "timestamp"),
    )


def _to_timesheet(r: dict, entries: Sequence[TimesheetEntry]) -> DailyTimesheet:
    return DailyTimesheet(
        timesheet_id=row_uuid(r, "id"),
        user_id=row_uuid(r, "user_id"),
        organization_id=row_uuid(r, "organization_id"),
        work_date=row_value(r, "work_date"),
        status=_to_status(row_value(r, "status")),
        total_minutes=int(r.get("total_minutes") or 0),
        created_at=row_value(r, "created_at"),
        entries=tuple(entries),
        user_name=r.get("user_name"),
        user_email=r.get("user_email"),
    )


class MySQLTimesheetRepository(TimesheetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_entries(self, cur, timesheet_ids: List[str], deadline: Optional[Deadline]) -> Dict[str, List[TimesheetEntry]]:
        grouped: Dict[str, List[TimesheetEntry]] = {tid: [] for tid in timesheet_ids}
        if not timesheet_ids:
            return grouped

        check_deadline(deadline)
        placeholders = ",".join(["%s"] * len(timesheet_ids))
        cur.execute(
            f"""
            SELECT id, timesheet_id, organization_id, entry_type, `timestamp`
            FROM timesheet_entries
            WHERE timesheet_id IN ({placeholders})
            ORDER BY `timestamp` ASC
            """,
            tuple(timesheet_ids),
        )
        for r in fetchall(cur):
            entry = _to_entry(r)
            grouped.setdefault(str(entry.timesheet_id), []).append(entry)
        return grouped

    def _hydrate(self, cur, rows: List[dict], deadline: Optional[Deadline]) -> List[DailyTimesheet]:
        ids = [str(row_uuid(r, "id")) for r in rows]
        entries = self._load_entries(cur, ids, deadline)
        return [_to_timesheet(r, entries[tid]) for r, tid in zip(rows, ids)]

    def get_for_user_and_date(
        self,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        work_date: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Optional[DailyTimesheet]:
        with db_cursor(self._conn_factory, deadline=deadline) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TIMESHEET_COLUMNS}
                FROM daily_timesheets dt
                JOIN users u ON u.id = dt.user_id
                WHERE dt.user_id=%s AND dt.organization_id=%s AND dt.work_date=%s
                """,
                (str(user_id), str(organization_id), work_date),
            )
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row], deadline)[0]

    def list_for_user_between(
        self,
        user_id: uuid.UUID,
        organization_id: uuid.UUID,
        start_date: date,
        end_date: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Sequence[DailyTimesheet]:
        with db_cursor(self._conn_factory, deadline=deadline) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TIMESHEET_COLUMNS}
                FROM daily_timesheets dt
                JOIN users u ON u.id = dt.user_id
                WHERE dt.user_id=%s AND dt.organization_id=%s
                  AND dt.work_date >= %s AND dt.work_date <= %s
                ORDER BY dt.work_date DESC
                """,
                (str(user_id), str(organization_id), start_date, end_date),
            )
            return self._hydrate(cur, fetchall(cur), deadline)

    def list_for_organization_and_date(
        self,
        organization_id: uuid.UUID,
        work_date: date,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Sequence[DailyTimesheet]:
        with db_cursor(self._conn_factory, deadline=deadline) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TIMESHEET_COLUMNS}
                FROM daily_timesheets dt
                JOIN users u ON u.id = dt.user_id
                WHERE dt.organization_id=%s AND dt.work_date=%s
                ORDER BY u.name ASC
                """,
                (str(organization_id), work_date),
            )
            return self._hydrate(cur, fetchall(cur), deadline)

    def get_by_id(self, timesheet_id: uuid.UUID, *, deadline: Optional[Deadline] = None) -> Optional[DailyTimesheet]:
        with db_cursor(self._conn_factory, deadline=deadline) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TIMESHEET_COLUMNS}
                FROM daily_timesheets dt
                JOIN users u ON u.id = dt.user_id
                WHERE dt.id=%s
                """,
                (str(timesheet_id),),
            )
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row], deadline)[0]

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
        with db_cursor(self._conn_factory, deadline=deadline) as (_, cur):
            # Insert-or-keep on the unique (user_id, work_date) key; the row lock
            # taken here and by FOR UPDATE serializes concurrent clock actions.
            check_deadline(deadline)
            cur.execute(
                """
                INSERT INTO daily_timesheets(id, user_id, organization_id, work_date, status, total_minutes, created_at)
                VALUES(%s,%s,%s,%s,%s,0,%s)
                ON DUPLICATE KEY UPDATE id = id
                """,
                (str(uuid.uuid4()), str(user_id), str(organization_id), work_date, TimesheetStatus.OPEN.value, timestamp),
            )

            check_deadline(deadline)
            cur.execute(
                "SELECT id FROM daily_timesheets WHERE user_id=%s AND work_date=%s FOR UPDATE",
                (str(user_id), work_date),
            )
            row = fetchone(cur)
            if not row:
                raise StorageError("Timesheet row vanished inside the clock transaction")
            timesheet_id = row_uuid(row, "id")

            check_deadline(deadline)
            cur.execute(
                """
                SELECT COUNT(*) AS entry_count, MAX(`timestamp`) AS last_timestamp
                FROM timesheet_entries
                WHERE timesheet_id=%s
                """,
                (str(timesheet_id),),
            )
            count_row = fetchone(cur) or {}
            entry_count = int(row_value(count_row, "entry_count"))

            entry = TimesheetEntry(
                entry_id=uuid.uuid4(),
                timesheet_id=timesheet_id,
                organization_id=organization_id,
                entry_type=choose_type(entry_count),
                timestamp=ordered_timestamp(timestamp, count_row.get("last_timestamp")),
            )

            check_deadline(deadline)
            cur.execute(
                """
                INSERT INTO timesheet_entries(id, timesheet_id, organization_id, entry_type, `timestamp`)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (
                    str(entry.entry_id),
                    str(entry.timesheet_id),
                    str(entry.organization_id),
                    entry.entry_type.value,
                    entry.timestamp,
                ),
            )
            logger.debug("Appended %s entry #%d to timesheet %s", entry.entry_type.value, entry_count + 1, timesheet_id)
        return entry

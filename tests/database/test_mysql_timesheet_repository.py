import uuid
from datetime import date, datetime

import mysql.connector
import pytest

from src.timesheet_pro.timesheet_pro.common.deadline import Deadline
from src.timesheet_pro.timesheet_pro.core.enums import EntryType, TimesheetStatus
from src.timesheet_pro.timesheet_pro.core.exceptions import ConversionError, OperationCancelledError, StorageError
from src.timesheet_pro.timesheet_pro.timesheets.mysql_timesheet_repository import MySQLTimesheetRepository
from src.timesheet_pro.timesheet_pro.timesheets.state import next_entry_type


USER = uuid.uuid4()
ORG = uuid.uuid4()
SHEET = uuid.uuid4()
DAY = date(2024, 3, 4)
NOW = datetime(2024, 3, 4, 9, 0)


@pytest.fixture
def repo(factory):
    return MySQLTimesheetRepository(factory)


def _statements(conn):
    return [sql for sql, _ in conn.executed]


def test_append_runs_lock_count_insert_in_one_transaction(repo, factory):
    conn = factory.conn
    conn.results = [
        ("FOR UPDATE", [{"id": str(SHEET)}]),
        ("COUNT(*)", [{"entry_count": 3, "last_timestamp": NOW.replace(hour=8)}]),
    ]

    entry = repo.append_clock_entry(
        user_id=USER, organization_id=ORG, work_date=DAY, timestamp=NOW, choose_type=next_entry_type
    )

    sql = _statements(conn)
    assert sql[0].startswith("INSERT INTO daily_timesheets")
    assert "ON DUPLICATE KEY UPDATE" in sql[0]
    assert sql[1].startswith("SELECT id FROM daily_timesheets") and sql[1].endswith("FOR UPDATE")
    assert "COUNT(*)" in sql[2]
    assert sql[3].startswith("INSERT INTO timesheet_entries")
    assert len(sql) == 4

    assert entry.entry_type == EntryType.OUT
    assert entry.timesheet_id == SHEET
    assert entry.organization_id == ORG
    assert conn.executed[3][1][3] == "out"
    assert conn.executed[0][1][4] == TimesheetStatus.OPEN.value
    assert conn.committed and not conn.rolled_back and conn.closed
    assert entry.timestamp == NOW


def test_append_never_stores_a_timestamp_before_the_last_entry(repo, factory):
    conn = factory.conn
    last = NOW.replace(minute=0, second=30)
    conn.results = [
        ("FOR UPDATE", [{"id": str(SHEET)}]),
        ("COUNT(*)", [{"entry_count": 1, "last_timestamp": last}]),
    ]

    entry = repo.append_clock_entry(
        user_id=USER, organization_id=ORG, work_date=DAY, timestamp=NOW, choose_type=next_entry_type
    )

    sql = _statements(conn)
    assert "MAX(`timestamp`)" in sql[2]
    assert entry.timestamp == last
    assert conn.executed[3][1][4] == last


def test_append_with_deadline_bounds_lock_waits_first(repo, factory):
    conn = factory.conn
    conn.results = [
        ("FOR UPDATE", [{"id": str(SHEET)}]),
        ("COUNT(*)", [{"entry_count": 0}]),
    ]

    entry = repo.append_clock_entry(
        user_id=USER,
        organization_id=ORG,
        work_date=DAY,
        timestamp=NOW,
        choose_type=next_entry_type,
        deadline=Deadline.after(30),
    )

    sql = _statements(conn)
    assert sql[0].startswith("SET SESSION innodb_lock_wait_timeout")
    assert sql[1].startswith("SET SESSION max_execution_time")
    assert entry.entry_type == EntryType.IN


def test_append_failure_rolls_back_everything(repo, factory):
    conn = factory.conn
    conn.results = [
        ("FOR UPDATE", [{"id": str(SHEET)}]),
        ("COUNT(*)", [{"entry_count": 1}]),
    ]
    conn.fail_on = [("INSERT INTO timesheet_entries", mysql.connector.errors.DatabaseError(msg="disk full", errno=1021))]

    with pytest.raises(StorageError) as exc:
        repo.append_clock_entry(
            user_id=USER, organization_id=ORG, work_date=DAY, timestamp=NOW, choose_type=next_entry_type
        )

    assert not isinstance(exc.value, OperationCancelledError)
    assert conn.rolled_back and not conn.committed and conn.closed


def test_lock_wait_timeout_under_deadline_is_a_cancellation(repo, factory):
    conn = factory.conn
    conn.fail_on = [("FOR UPDATE", mysql.connector.errors.DatabaseError(msg="Lock wait timeout exceeded", errno=1205))]

    with pytest.raises(OperationCancelledError):
        repo.append_clock_entry(
            user_id=USER,
            organization_id=ORG,
            work_date=DAY,
            timestamp=NOW,
            choose_type=next_entry_type,
            deadline=Deadline.after(1),
        )

    assert conn.rolled_back and not conn.committed


def test_cancelled_deadline_never_opens_a_connection(repo, factory):
    deadline = Deadline.none()
    deadline.cancel()

    with pytest.raises(OperationCancelledError):
        repo.append_clock_entry(
            user_id=USER,
            organization_id=ORG,
            work_date=DAY,
            timestamp=NOW,
            choose_type=next_entry_type,
            deadline=deadline,
        )

    assert factory.connects == 0


def _timesheet_row(sheet_id=SHEET, status="open"):
    return {
        "id": str(sheet_id),
        "user_id": str(USER),
        "organization_id": str(ORG),
        "work_date": DAY,
        "status": status,
        "total_minutes": 0,
        "created_at": NOW,
        "user_name": "Bob Builder",
        "user_email": "bob@example.com",
    }


def _entry_row(entry_type, hour, sheet_id=SHEET):
    return {
        "id": str(uuid.uuid4()),
        "timesheet_id": str(sheet_id),
        "organization_id": str(ORG),
        "entry_type": entry_type,
        "timestamp": NOW.replace(hour=hour),
    }


def test_day_lookup_attaches_entries(repo, factory):
    conn = factory.conn
    conn.results = [
        ("FROM daily_timesheets", [_timesheet_row()]),
        ("FROM timesheet_entries", [_entry_row("in", 9), _entry_row("out", 12)]),
    ]

    sheet = repo.get_for_user_and_date(USER, ORG, DAY)

    assert sheet.timesheet_id == SHEET
    assert sheet.status == TimesheetStatus.OPEN
    assert sheet.user_name == "Bob Builder"
    assert [e.entry_type for e in sheet.entries] == [EntryType.IN, EntryType.OUT]
    assert conn.executed[0][1] == (str(USER), str(ORG), DAY)


def test_missing_day_returns_none_without_entry_query(repo, factory):
    assert repo.get_for_user_and_date(USER, ORG, DAY) is None
    assert len(factory.conn.executed) == 1


def test_range_loads_all_entries_in_one_query(repo, factory):
    other = uuid.uuid4()
    conn = factory.conn
    conn.results = [
        ("FROM daily_timesheets", [_timesheet_row(SHEET), _timesheet_row(other)]),
        ("FROM timesheet_entries", [_entry_row("in", 9, SHEET), _entry_row("in", 10, other)]),
    ]

    rows = repo.list_for_user_between(USER, ORG, date(2024, 1, 1), date(2024, 1, 31))

    assert [len(r.entries) for r in rows] == [1, 1]
    entry_queries = [sql for sql in _statements(conn) if "FROM timesheet_entries" in sql]
    assert len(entry_queries) == 1
    assert "IN (%s,%s)" in entry_queries[0]
    assert "ORDER BY dt.work_date DESC" in _statements(conn)[0]


def test_unknown_entry_type_is_a_conversion_error(repo, factory):
    conn = factory.conn
    conn.results = [
        ("FROM daily_timesheets", [_timesheet_row()]),
        ("FROM timesheet_entries", [_entry_row("sideways", 9)]),
    ]

    with pytest.raises(ConversionError):
        repo.get_by_id(SHEET)

    assert conn.rolled_back

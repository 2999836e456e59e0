from __future__ import annotations

from datetime import timedelta

from flask import Flask, request

from ..common.datetime_utils import format_iso_date, now_local, parse_iso_date, truncate_to_day
from ..common.validators import parse_uuid
from ..common.web import current_user_id, json_ok, login_required, request_deadline
from ..container import Container
from ..core.constants import DEFAULT_RANGE_DAYS
from .model import DailyTimesheet, TimesheetEntry
from .state import ClockState


def entry_to_dict(entry: TimesheetEntry) -> dict:
    return {
        "id": str(entry.entry_id),
        "type": entry.entry_type.value,
        "timestamp": entry.timestamp.isoformat(),
    }


def timesheet_to_dict(ts: DailyTimesheet) -> dict:
    return {
        "id": str(ts.timesheet_id),
        "user_id": str(ts.user_id),
        "organization_id": str(ts.organization_id),
        "date": format_iso_date(ts.work_date),
        "status": ts.status.value,
        "total_minutes": ts.total_minutes,
        "created_at": ts.created_at.isoformat() if ts.created_at else None,
        "user_name": ts.user_name,
        "user_email": ts.user_email,
        "entries": [entry_to_dict(e) for e in ts.entries],
    }


def state_to_dict(state: ClockState) -> dict:
    return {
        "status": state.status,
        "since": state.since.isoformat() if state.since else None,
    }


def register(app: Flask, container: Container) -> None:
    clock = container.clock_service
    queries = container.timesheet_query_service

    def _date_range_args():
        """Read ?start=&end=; missing bounds give the last DEFAULT_RANGE_DAYS days up to today."""
        start_s = request.args.get("start")
        end_s = request.args.get("end")

        end = parse_iso_date(end_s, "end") if end_s else truncate_to_day(now_local())
        start = parse_iso_date(start_s, "start") if start_s else end - timedelta(days=DEFAULT_RANGE_DAYS)
        return start, end

    @app.route("/api/v1/organizations/<org_id>/clock", methods=["POST"], endpoint="clock_in_or_out")
    @login_required
    def clock_in_or_out(org_id: str):
        entry = clock.clock_in_or_out(
            current_user_id(),
            parse_uuid(org_id, "organization id"),
            now_local(),
            deadline=request_deadline(),
        )
        return json_ok(entry_to_dict(entry), 201, f"Clocked {entry.entry_type.value}")

    @app.route("/api/v1/organizations/<org_id>/timesheets/me/status", methods=["GET"], endpoint="my_clock_status")
    @login_required
    def my_clock_status(org_id: str):
        state = clock.current_status(
            current_user_id(),
            parse_uuid(org_id, "organization id"),
            now_local(),
            deadline=request_deadline(),
        )
        return json_ok(state_to_dict(state))

    @app.route("/api/v1/organizations/<org_id>/timesheets/me", methods=["GET"], endpoint="my_timesheets")
    @login_required
    def my_timesheets(org_id: str):
        user_id = current_user_id()
        organization_id = parse_uuid(org_id, "organization id")

        # ?date= asks for one day; otherwise a range
        date_s = request.args.get("date")
        if date_s or not (request.args.get("start") or request.args.get("end")):
            work_date = parse_iso_date(date_s, "date") if date_s else truncate_to_day(now_local())
            ts = queries.get_user_day(user_id, user_id, organization_id, work_date, deadline=request_deadline())
            return json_ok(timesheet_to_dict(ts))

        start, end = _date_range_args()
        rows = queries.get_user_range(user_id, user_id, organization_id, start, end, deadline=request_deadline())
        return json_ok([timesheet_to_dict(ts) for ts in rows])

    @app.route("/api/v1/organizations/<org_id>/users/<user_id>/timesheets", methods=["GET"], endpoint="user_timesheets")
    @login_required
    def user_timesheets(org_id: str, user_id: str):
        start, end = _date_range_args()
        rows = queries.get_user_range(
            current_user_id(),
            parse_uuid(user_id, "user id"),
            parse_uuid(org_id, "organization id"),
            start,
            end,
            deadline=request_deadline(),
        )
        return json_ok([timesheet_to_dict(ts) for ts in rows])

    @app.route("/api/v1/organizations/<org_id>/timesheets", methods=["GET"], endpoint="organization_timesheets")
    @login_required
    def organization_timesheets(org_id: str):
        date_s = request.args.get("date")
        work_date = parse_iso_date(date_s, "date") if date_s else truncate_to_day(now_local())
        rows = queries.get_organization_day(
            current_user_id(),
            parse_uuid(org_id, "organization id"),
            work_date,
            deadline=request_deadline(),
        )
        return json_ok([timesheet_to_dict(ts) for ts in rows])

    @app.route("/api/v1/timesheets/<timesheet_id>", methods=["GET"], endpoint="get_timesheet")
    @login_required
    def get_timesheet(timesheet_id: str):
        ts = queries.get_by_id(
            current_user_id(),
            parse_uuid(timesheet_id, "timesheet id"),
            deadline=request_deadline(),
        )
        return json_ok(timesheet_to_dict(ts))

"""Example: drive the service layer directly (no Flask).

Registers two users, creates an organization, clocks the creator in and out
and prints the day's timesheet plus the current status.
"""

import importlib
import uuid

from config import get_settings_module

from src.timesheet_pro.timesheet_pro.common.datetime_utils import now_local, truncate_to_day
from src.timesheet_pro.timesheet_pro.common.deadline import Deadline
from src.timesheet_pro.timesheet_pro.container import build_container
from src.timesheet_pro.timesheet_pro.core.logging import setup_logging


def main():
    settings = importlib.import_module(get_settings_module())
    setup_logging("INFO")
    container = build_container(db_config=settings.DB_CONFIG)

    suffix = uuid.uuid4().hex[:8]
    owner = container.user_service.register(name="Owner Example", email=f"owner-{suffix}@example.com", password="secret1")
    org = container.organization_service.create_organization(creator_id=owner.user_id, name=f"Example {suffix}")

    for _ in range(2):
        entry = container.clock_service.clock_in_or_out(
            owner.user_id, org.organization_id, now_local(), deadline=Deadline.after(5)
        )
        print("clocked", entry.entry_type.value, entry.timestamp.isoformat())

    day = container.timesheet_query_service.get_user_day(
        owner.user_id, owner.user_id, org.organization_id, truncate_to_day(now_local())
    )
    print([(e.entry_type.value, e.timestamp.isoformat()) for e in day.entries])
    print(container.clock_service.current_status(owner.user_id, org.organization_id, now_local()))


if __name__ == "__main__":
    main()

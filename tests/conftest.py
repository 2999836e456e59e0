from __future__ import annotations

import dataclasses
import threading
import uuid
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from typing import Callable, Optional

import pytest
from werkzeug.security import generate_password_hash

from src.timesheet_pro.timesheet_pro.common.deadline import Deadline, check_deadline
from src.timesheet_pro.timesheet_pro.core.enums import Role, TimesheetStatus
from src.timesheet_pro.timesheet_pro.organizations.model import Organization, OrganizationMember
from src.timesheet_pro.timesheet_pro.organizations.service import MembershipAuthority, OrganizationService
from src.timesheet_pro.timesheet_pro.timesheets.model import DailyTimesheet, TimesheetEntry
from src.timesheet_pro.timesheet_pro.timesheets.service import ClockService, TimesheetQueryService
from src.timesheet_pro.timesheet_pro.timesheets.state import ordered_timestamp
from src.timesheet_pro.timesheet_pro.users.model import User
from src.timesheet_pro.timesheet_pro.users.service import AuthService, UserService

PASSWORD = "secret1"
_PASSWORD_HASH = generate_password_hash(PASSWORD)


class InMemoryUsers:
    def __init__(self):
        self.by_id: dict[uuid.UUID, User] = {}

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.by_id.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.by_id.values() if u.email == email), None)

    def create_user(self, *, user: User) -> User:
        self.by_id[user.user_id] = user
        return user

    def update_profile(self, user_id, *, name: str, email: str) -> bool:
        user = self.by_id.get(user_id)
        if not user:
            return False
        self.by_id[user_id] = dataclasses.replace(user, name=name, email=email)
        return True


class InMemoryMemberships:
    def __init__(self, users: InMemoryUsers):
        self._users = users
        self.rows: dict[tuple[uuid.UUID, uuid.UUID], tuple[Role, datetime]] = {}
        self.role_lookups = 0
        self._joined_seq = 0

    def get_role(self, user_id, organization_id, *, deadline: Optional[Deadline] = None) -> Optional[Role]:
        check_deadline(deadline)
        self.role_lookups += 1
        row = self.rows.get((user_id, organization_id))
        return row[0] if row else None

    def add_member(self, *, user_id, organization_id, role: Role) -> None:
        if (user_id, organization_id) in self.rows:
            raise AssertionError("duplicate membership row")
        self._joined_seq += 1
        self.rows[(user_id, organization_id)] = (role, datetime(2024, 1, 1, 8, 0) + timedelta(seconds=self._joined_seq))

    def remove_member(self, *, user_id, organization_id) -> bool:
        return self.rows.pop((user_id, organization_id), None) is not None

    def list_members(self, organization_id):
        members = []
        for (user_id, org_id), (role, joined_at) in self.rows.items():
            if org_id != organization_id:
                continue
            user = self._users.get_by_id(user_id)
            members.append(
                OrganizationMember(user_id=user_id, name=user.name, email=user.email, role=role, joined_at=joined_at)
            )
        members.sort(key=lambda m: m.joined_at)
        return members


class InMemoryOrganizations:
    def __init__(self, memberships: InMemoryMemberships):
        self._memberships = memberships
        self.by_id: dict[uuid.UUID, Organization] = {}

    def get_by_id(self, organization_id):
        return self.by_id.get(organization_id)

    def get_first_for_user(self, user_id):
        for (member_id, org_id), _ in sorted(self._memberships.rows.items(), key=lambda kv: kv[1][1]):
            if member_id == user_id and org_id in self.by_id:
                return self.by_id[org_id]
        return None

    def create_with_admin(self, *, organization: Organization) -> Organization:
        self.by_id[organization.organization_id] = organization
        self._memberships.add_member(
            user_id=organization.created_by, organization_id=organization.organization_id, role=Role.ADMIN
        )
        return organization

    def update(self, organization_id, *, name: str, address=None) -> bool:
        org = self.by_id.get(organization_id)
        if not org:
            return False
        self.by_id[organization_id] = dataclasses.replace(org, name=name, address=address or org.address)
        return True

    def delete(self, organization_id) -> bool:
        if self.by_id.pop(organization_id, None) is None:
            return False
        for key in [k for k in self._memberships.rows if k[1] == organization_id]:
            del self._memberships.rows[key]
        return True


class InMemoryTimesheets:
    """Timesheet store with the same per-(user, date) serialization as the MySQL one."""

    def __init__(self, users: InMemoryUsers):
        self._users = users
        self._guard = threading.Lock()
        self._key_locks: dict[tuple[uuid.UUID, date], threading.Lock] = {}
        self.sheets: dict[uuid.UUID, DailyTimesheet] = {}
        self.entries: dict[uuid.UUID, list[TimesheetEntry]] = {}
        # Called between reading the entry count and writing the entry.
        self.between_count_and_write: Optional[Callable[[], None]] = None

    def _lock_for(self, key) -> threading.Lock:
        with self._guard:
            return self._key_locks.setdefault(key, threading.Lock())

    def _view(self, sheet: DailyTimesheet) -> DailyTimesheet:
        user = self._users.get_by_id(sheet.user_id)
        return dataclasses.replace(
            sheet,
            entries=tuple(sorted(self.entries.get(sheet.timesheet_id, []), key=lambda e: e.timestamp)),
            user_name=user.name if user else None,
            user_email=user.email if user else None,
        )

    def add_sheet(self, *, user_id, organization_id, work_date: date, entries=(), status=TimesheetStatus.OPEN):
        """Seed a timesheet with (EntryType, datetime) pairs."""
        sheet = DailyTimesheet(
            timesheet_id=uuid.uuid4(),
            user_id=user_id,
            organization_id=organization_id,
            work_date=work_date,
            status=status,
            total_minutes=0,
            created_at=datetime.combine(work_date, datetime.min.time()),
        )
        self.sheets[sheet.timesheet_id] = sheet
        self.entries[sheet.timesheet_id] = [
            TimesheetEntry(
                entry_id=uuid.uuid4(),
                timesheet_id=sheet.timesheet_id,
                organization_id=organization_id,
                entry_type=entry_type,
                timestamp=ts,
            )
            for entry_type, ts in entries
        ]
        return sheet

    def get_for_user_and_date(self, user_id, organization_id, work_date, *, deadline=None):
        check_deadline(deadline)
        for sheet in self.sheets.values():
            if sheet.user_id == user_id and sheet.organization_id == organization_id and sheet.work_date == work_date:
                return self._view(sheet)
        return None

    def list_for_user_between(self, user_id, organization_id, start_date, end_date, *, deadline=None):
        check_deadline(deadline)
        rows = [
            self._view(s)
            for s in self.sheets.values()
            if s.user_id == user_id and s.organization_id == organization_id and start_date <= s.work_date <= end_date
        ]
        rows.sort(key=lambda s: s.work_date, reverse=True)
        return rows

    def list_for_organization_and_date(self, organization_id, work_date, *, deadline=None):
        check_deadline(deadline)
        rows = [self._view(s) for s in self.sheets.values() if s.organization_id == organization_id and s.work_date == work_date]
        rows.sort(key=lambda s: s.user_name or "")
        return rows

    def get_by_id(self, timesheet_id, *, deadline=None):
        check_deadline(deadline)
        sheet = self.sheets.get(timesheet_id)
        return self._view(sheet) if sheet else None

    def append_clock_entry(self, *, user_id, organization_id, work_date, timestamp, choose_type, deadline=None):
        check_deadline(deadline)
        with self._lock_for((user_id, work_date)):
            sheet = next((s for s in self.sheets.values() if s.user_id == user_id and s.work_date == work_date), None)
            if sheet is None:
                sheet = DailyTimesheet(
                    timesheet_id=uuid.uuid4(),
                    user_id=user_id,
                    organization_id=organization_id,
                    work_date=work_date,
                    status=TimesheetStatus.OPEN,
                    total_minutes=0,
                    created_at=timestamp,
                )
                with self._guard:
                    self.sheets[sheet.timesheet_id] = sheet
                    self.entries[sheet.timesheet_id] = []

            stored = self.entries[sheet.timesheet_id]
            count = len(stored)
            last = max((e.timestamp for e in stored), default=None)
            if self.between_count_and_write:
                self.between_count_and_write()
            entry = TimesheetEntry(
                entry_id=uuid.uuid4(),
                timesheet_id=sheet.timesheet_id,
                organization_id=organization_id,
                entry_type=choose_type(count),
                timestamp=ordered_timestamp(timestamp, last),
            )
            self.entries[sheet.timesheet_id].append(entry)
            return entry


@pytest.fixture
def users():
    return InMemoryUsers()


@pytest.fixture
def memberships(users):
    return InMemoryMemberships(users)


@pytest.fixture
def organizations(memberships):
    return InMemoryOrganizations(memberships)


@pytest.fixture
def timesheets(users):
    return InMemoryTimesheets(users)


@pytest.fixture
def authority(memberships):
    return MembershipAuthority(memberships)


@pytest.fixture
def clock_service(timesheets, authority):
    return ClockService(timesheets, authority)


@pytest.fixture
def query_service(timesheets, authority):
    return TimesheetQueryService(timesheets, authority)


@pytest.fixture
def organization_service(organizations, memberships, users, authority):
    return OrganizationService(organizations, memberships, users, authority)


@pytest.fixture
def user_service(users):
    return UserService(users)


@pytest.fixture
def auth_service(users):
    return AuthService(users)


@pytest.fixture
def make_user(users):
    def _make(name: str = "Alice Example", email: Optional[str] = None) -> User:
        user = User(
            user_id=uuid.uuid4(),
            name=name,
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            password_hash=_PASSWORD_HASH,
            created_at=datetime(2024, 1, 1, 8, 0),
        )
        return users.create_user(user=user)

    return _make


@pytest.fixture
def make_org(organizations):
    def _make(owner: User, name: str = "Acme Corp") -> Organization:
        org = Organization(
            organization_id=uuid.uuid4(),
            name=name,
            created_by=owner.user_id,
            created_at=datetime(2024, 1, 1, 8, 0),
        )
        return organizations.create_with_admin(organization=org)

    return _make


@pytest.fixture
def team(make_user, make_org, memberships):
    """An organization with an admin, two plain members and one outsider."""
    admin = make_user("Alice Admin", "alice@example.com")
    bob = make_user("Bob Builder", "bob@example.com")
    carol = make_user("Carol Clerk", "carol@example.com")
    outsider = make_user("Oscar Outsider", "oscar@example.com")
    org = make_org(admin)
    memberships.add_member(user_id=bob.user_id, organization_id=org.organization_id, role=Role.MEMBER)
    memberships.add_member(user_id=carol.user_id, organization_id=org.organization_id, role=Role.MEMBER)
    return SimpleNamespace(org=org, admin=admin, bob=bob, carol=carol, outsider=outsider)

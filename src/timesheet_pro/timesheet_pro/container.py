from __future__ import annotations

from dataclasses import dataclass

from .database.connection import DatabaseConnection, db_config_from_dict
from .organizations.mysql_membership_repository import MySQLMembershipRepository
from .organizations.mysql_organization_repository import MySQLOrganizationRepository
from .organizations.service import MembershipAuthority, OrganizationService
from .timesheets.mysql_timesheet_repository import MySQLTimesheetRepository
from .timesheets.service import ClockService, TimesheetQueryService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    organizations_repo: MySQLOrganizationRepository
    memberships_repo: MySQLMembershipRepository
    timesheets_repo: MySQLTimesheetRepository

    membership_authority: MembershipAuthority
    auth_service: AuthService
    user_service: UserService
    organization_service: OrganizationService
    clock_service: ClockService
    timesheet_query_service: TimesheetQueryService


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection(db_config_from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    organizations_repo = MySQLOrganizationRepository(conn)
    memberships_repo = MySQLMembershipRepository(conn)
    timesheets_repo = MySQLTimesheetRepository(conn)

    membership_authority = MembershipAuthority(memberships_repo)
    auth_service = AuthService(users_repo)
    user_service = UserService(users_repo)
    organization_service = OrganizationService(organizations_repo, memberships_repo, users_repo, membership_authority)
    clock_service = ClockService(timesheets_repo, membership_authority)
    timesheet_query_service = TimesheetQueryService(timesheets_repo, membership_authority)

    return Container(
        conn=conn,
        users_repo=users_repo,
        organizations_repo=organizations_repo,
        memberships_repo=memberships_repo,
        timesheets_repo=timesheets_repo,
        membership_authority=membership_authority,
        auth_service=auth_service,
        user_service=user_service,
        organization_service=organization_service,
        clock_service=clock_service,
        timesheet_query_service=timesheet_query_service,
    )

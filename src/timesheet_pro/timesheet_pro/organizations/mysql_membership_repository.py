from __future__ import annotations

import uuid
from typing import Optional, Sequence

from ..common.deadline import Deadline
from ..core.enums import Role
from ..core.exceptions import ConversionError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, row_uuid, row_value
from .model import OrganizationMember
from .repository import MembershipRepository

# organization_roles reference rows (see database/schema.sql)
ROLE_IDS = {Role.MEMBER: 1, Role.ADMIN: 2}
_ROLES_BY_ID = {v: k for k, v in ROLE_IDS.items()}


def role_from_id(value) -> Role:
    try:
        return _ROLES_BY_ID[int(value)]
    except (KeyError, TypeError, ValueError) as e:
        raise ConversionError(f"Unknown organization role id: {value!r}") from e


class MySQLMembershipRepository(MembershipRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_role(
        self, user_id: uuid.UUID, organization_id: uuid.UUID, *, deadline: Optional[Deadline] = None
    ) -> Optional[Role]:
        with db_cursor(self._conn_factory, deadline=deadline) as (_, cur):
            cur.execute(
                """
                SELECT organization_role_id
                FROM organization_users
                WHERE user_id=%s AND organization_id=%s
                """,
                (str(user_id), str(organization_id)),
            )
            row = fetchone(cur)
            if not row:
                return None
            return role_from_id(row_value(row, "organization_role_id"))

    def add_member(self, *, user_id: uuid.UUID, organization_id: uuid.UUID, role: Role) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO organization_users(user_id, organization_id, organization_role_id)
                VALUES(%s,%s,%s)
                """,
                (str(user_id), str(organization_id), ROLE_IDS[role]),
            )

    def remove_member(self, *, user_id: uuid.UUID, organization_id: uuid.UUID) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM organization_users WHERE user_id=%s AND organization_id=%s",
                (str(user_id), str(organization_id)),
            )
            return cur.rowcount > 0

    def list_members(self, organization_id: uuid.UUID) -> Sequence[OrganizationMember]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.id AS user_id, u.name, u.email, ou.organization_role_id, ou.joined_at
                FROM organization_users ou
                JOIN users u ON u.id = ou.user_id
                WHERE ou.organization_id=%s
                ORDER BY ou.joined_at ASC
                """,
                (str(organization_id),),
            )
            return [
                OrganizationMember(
                    user_id=row_uuid(r, "user_id"),
                    name=r["name"],
                    email=r["email"],
                    role=role_from_id(row_value(r, "organization_role_id")),
                    joined_at=r["joined_at"],
                )
                for r in fetchall(cur)
            ]

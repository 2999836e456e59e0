from __future__ import annotations

import uuid
from typing import Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, row_uuid
from .model import Address, Organization
from .mysql_membership_repository import ROLE_IDS
from .repository import OrganizationRepository

_ORGANIZATION_COLUMNS = """
    o.id, o.name, o.created_by, o.created_at,
    a.zip_code, a.complement, a.public_place, a.city, a.state
"""

_UPSERT_ADDRESS = """
    INSERT INTO organization_addresses(organization_id, zip_code, complement, public_place, city, state)
    VALUES(%s,%s,%s,%s,%s,%s)
    ON DUPLICATE KEY UPDATE
        zip_code = VALUES(zip_code),
        complement = VALUES(complement),
        public_place = VALUES(public_place),
        city = VALUES(city),
        state = VALUES(state)
"""


def _to_address(r: dict) -> Optional[Address]:
    # LEFT JOIN: no address row means every address column is NULL
    if r.get("zip_code") is None:
        return None
    return Address(
        zip_code=r["zip_code"],
        complement=r["complement"],
        public_place=r["public_place"],
        city=r["city"],
        state=r["state"],
    )


def _to_organization(r: dict) -> Organization:
    return Organization(
        organization_id=row_uuid(r, "id"),
        name=r["name"],
        created_by=row_uuid(r, "created_by"),
        created_at=r["created_at"],
        address=_to_address(r),
    )


def _address_params(organization_id: uuid.UUID, address: Address) -> tuple:
    return (
        str(organization_id),
        address.zip_code,
        address.complement,
        address.public_place,
        address.city,
        address.state,
    )


class MySQLOrganizationRepository(OrganizationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, organization_id: uuid.UUID) -> Optional[Organization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ORGANIZATION_COLUMNS}
                FROM organizations o
                LEFT JOIN organization_addresses a ON a.organization_id = o.id
                WHERE o.id=%s
                """,
                (str(organization_id),),
            )
            r = fetchone(cur)
            return _to_organization(r) if r else None

    def get_first_for_user(self, user_id: uuid.UUID) -> Optional[Organization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ORGANIZATION_COLUMNS}
                FROM organizations o
                JOIN organization_users ou ON ou.organization_id = o.id
                LEFT JOIN organization_addresses a ON a.organization_id = o.id
                WHERE ou.user_id=%s
                ORDER BY ou.joined_at ASC
                LIMIT 1
                """,
                (str(user_id),),
            )
            r = fetchone(cur)
            return _to_organization(r) if r else None

    def create_with_admin(self, *, organization: Organization) -> Organization:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO organizations(id, name, created_by, created_at)
                VALUES(%s,%s,%s,%s)
                """,
                (
                    str(organization.organization_id),
                    organization.name,
                    str(organization.created_by),
                    organization.created_at,
                ),
            )
            if organization.address is not None:
                cur.execute(_UPSERT_ADDRESS, _address_params(organization.organization_id, organization.address))
            cur.execute(
                """
                INSERT INTO organization_users(user_id, organization_id, organization_role_id, joined_at)
                VALUES(%s,%s,%s,%s)
                """,
                (
                    str(organization.created_by),
                    str(organization.organization_id),
                    ROLE_IDS[Role.ADMIN],
                    organization.created_at,
                ),
            )
        return organization

    def update(self, organization_id: uuid.UUID, *, name: str, address: Optional[Address] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # rowcount of the UPDATE is 0 for an unchanged name, so lock the row to test existence
            cur.execute("SELECT id FROM organizations WHERE id=%s FOR UPDATE", (str(organization_id),))
            if not fetchone(cur):
                return False
            cur.execute("UPDATE organizations SET name=%s WHERE id=%s", (name, str(organization_id)))
            if address is not None:
                cur.execute(_UPSERT_ADDRESS, _address_params(organization_id, address))
            return True

    def delete(self, organization_id: uuid.UUID) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM organizations WHERE id=%s", (str(organization_id),))
            return cur.rowcount > 0

from __future__ import annotations

import uuid
from typing import Optional, Protocol, Sequence

from ..common.deadline import Deadline
from ..core.enums import Role
from .model import Address, Organization, OrganizationMember


class MembershipRepository(Protocol):
    """Read/write access to the (user, organization, role) relation.

    Absence of a membership row is a normal answer (``None``), never an error.
    """

    def get_role(
        self, user_id: uuid.UUID, organization_id: uuid.UUID, *, deadline: Optional[Deadline] = None
    ) -> Optional[Role]:
        raise NotImplementedError

    def add_member(self, *, user_id: uuid.UUID, organization_id: uuid.UUID, role: Role) -> None:
        raise NotImplementedError

    def remove_member(self, *, user_id: uuid.UUID, organization_id: uuid.UUID) -> bool:
        raise NotImplementedError

    def list_members(self, organization_id: uuid.UUID) -> Sequence[OrganizationMember]:
        raise NotImplementedError


class OrganizationRepository(Protocol):
    def get_by_id(self, organization_id: uuid.UUID) -> Optional[Organization]:
        raise NotImplementedError

    def get_first_for_user(self, user_id: uuid.UUID) -> Optional[Organization]:
        raise NotImplementedError

    def create_with_admin(self, *, organization: Organization) -> Organization:
        """Insert the organization, its address and its creator's admin membership in one transaction."""

        raise NotImplementedError

    def update(self, organization_id: uuid.UUID, *, name: str, address: Optional[Address] = None) -> bool:
        """Set the name and, when given, replace the address. False if the organization is gone."""

        raise NotImplementedError

    def delete(self, organization_id: uuid.UUID) -> bool:
        raise NotImplementedError

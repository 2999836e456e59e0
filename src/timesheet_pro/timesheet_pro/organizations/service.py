from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import Any, Mapping, Optional, Sequence, Union

from ..common.datetime_utils import now_local
from ..common.deadline import Deadline
from ..common.validators import require_email, require_length_between, require_non_empty
from ..core.constants import ORG_NAME_MAX_LENGTH, ORG_NAME_MIN_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import Address, Organization, OrganizationMember
from .repository import MembershipRepository, OrganizationRepository

logger = logging.getLogger(__name__)

_ADDRESS_FIELDS = (
    ("zip_code", "Zip code"),
    ("complement", "Complement"),
    ("public_place", "Public place"),
    ("city", "City"),
    ("state", "State"),
)

AddressInput = Union[Address, Mapping[str, Any], None]


def validate_address(value: AddressInput) -> Optional[Address]:
    """Every field is required once an address is given at all."""
    if value is None:
        return None
    if isinstance(value, Address):
        value = dataclasses.asdict(value)
    if not isinstance(value, Mapping):
        raise ValidationError("Address must be an object")
    return Address(**{field: require_non_empty(value.get(field), label) for field, label in _ADDRESS_FIELDS})


class MembershipAuthority:
    """Answers "is user X a member/admin of organization Y".

    Pure reads; every call goes to the store (no caching), so a revoked
    membership takes effect on the next request.
    """

    def __init__(self, memberships: MembershipRepository):
        self._memberships = memberships

    def is_member(self, user_id: uuid.UUID, organization_id: uuid.UUID, *, deadline: Optional[Deadline] = None) -> bool:
        return self._memberships.get_role(user_id, organization_id, deadline=deadline) is not None

    def is_admin(self, user_id: uuid.UUID, organization_id: uuid.UUID, *, deadline: Optional[Deadline] = None) -> bool:
        return self._memberships.get_role(user_id, organization_id, deadline=deadline) == Role.ADMIN

    def require_member(
        self, user_id: uuid.UUID, organization_id: uuid.UUID, *, deadline: Optional[Deadline] = None
    ) -> None:
        if not self.is_member(user_id, organization_id, deadline=deadline):
            logger.warning("Denied: user %s is not a member of organization %s", user_id, organization_id)
            raise AuthorizationError("You are not a member of this organization")

    def require_admin(
        self, user_id: uuid.UUID, organization_id: uuid.UUID, *, deadline: Optional[Deadline] = None
    ) -> None:
        self.require_member(user_id, organization_id, deadline=deadline)
        if not self.is_admin(user_id, organization_id, deadline=deadline):
            logger.warning("Denied: user %s is not an admin of organization %s", user_id, organization_id)
            raise AuthorizationError("Only organization admins can do this")


class OrganizationService:
    """Use case: create organizations and manage their members."""

    def __init__(
        self,
        organizations: OrganizationRepository,
        memberships: MembershipRepository,
        users: UserRepository,
        authority: MembershipAuthority,
    ):
        self._organizations = organizations
        self._memberships = memberships
        self._users = users
        self._authority = authority

    def _validate_name(self, name: str) -> str:
        name = require_non_empty(name, "Organization name")
        return require_length_between(name, "Organization name", ORG_NAME_MIN_LENGTH, ORG_NAME_MAX_LENGTH)

    def _get_or_404(self, organization_id: uuid.UUID) -> Organization:
        org = self._organizations.get_by_id(organization_id)
        if not org:
            raise NotFoundError("Organization not found")
        return org

    def create_organization(self, *, creator_id: uuid.UUID, name: str, address: AddressInput = None) -> Organization:
        name = self._validate_name(name)
        address = validate_address(address)
        if not self._users.get_by_id(creator_id):
            raise NotFoundError("User not found")

        org = Organization(
            organization_id=uuid.uuid4(),
            name=name,
            created_by=creator_id,
            created_at=now_local(),
            address=address,
        )
        created = self._organizations.create_with_admin(organization=org)
        logger.info("Organization %s created by %s", created.organization_id, creator_id)
        return created

    def get_organization(self, *, requester_id: uuid.UUID, organization_id: uuid.UUID) -> Organization:
        org = self._get_or_404(organization_id)
        self._authority.require_member(requester_id, organization_id)
        return org

    def get_organization_for_user(self, user_id: uuid.UUID) -> Organization:
        org = self._organizations.get_first_for_user(user_id)
        if not org:
            raise NotFoundError("You are not part of any organization")
        return org

    def update_organization(
        self,
        *,
        requester_id: uuid.UUID,
        organization_id: uuid.UUID,
        name: str,
        address: AddressInput = None,
    ) -> Organization:
        """Rename, and replace the address when one is given; an omitted address is kept."""
        name = self._validate_name(name)
        address = validate_address(address)
        org = self._get_or_404(organization_id)
        self._authority.require_admin(requester_id, organization_id)

        if not self._organizations.update(organization_id, name=name, address=address):
            raise NotFoundError("Organization not found")
        logger.info("Organization %s updated by %s", organization_id, requester_id)
        return dataclasses.replace(org, name=name, address=address or org.address)

    def delete_organization(self, *, requester_id: uuid.UUID, organization_id: uuid.UUID) -> None:
        self._get_or_404(organization_id)
        self._authority.require_admin(requester_id, organization_id)
        if not self._organizations.delete(organization_id):
            raise NotFoundError("Organization not found")
        logger.info("Organization %s deleted by %s", organization_id, requester_id)

    def list_members(self, *, requester_id: uuid.UUID, organization_id: uuid.UUID) -> list[OrganizationMember]:
        self._authority.require_member(requester_id, organization_id)
        members: Sequence[OrganizationMember] = self._memberships.list_members(organization_id)
        return list(members or [])

    def add_member_by_email(
        self,
        *,
        requester_id: uuid.UUID,
        organization_id: uuid.UUID,
        email: str,
        role: Role = Role.MEMBER,
    ) -> OrganizationMember:
        email = require_email(email)
        if not isinstance(role, Role):
            try:
                role = Role(str(role).lower())
            except ValueError:
                raise ValidationError(f"Invalid role: {role!r}")

        self._authority.require_admin(requester_id, organization_id)

        user = self._users.get_by_email(email)
        if not user:
            raise NotFoundError("No user with this email")
        if self._authority.is_member(user.user_id, organization_id):
            raise ValidationError("User is already a member of this organization")

        self._memberships.add_member(user_id=user.user_id, organization_id=organization_id, role=role)
        logger.info("User %s added to organization %s as %s", user.user_id, organization_id, role.value)

        joined = next((m for m in self._memberships.list_members(organization_id) if m.user_id == user.user_id), None)
        if joined:
            return joined
        return OrganizationMember(user_id=user.user_id, name=user.name, email=user.email, role=role, joined_at=now_local())

    def remove_member(self, *, requester_id: uuid.UUID, organization_id: uuid.UUID, target_user_id: uuid.UUID) -> None:
        self._authority.require_admin(requester_id, organization_id)
        if requester_id == target_user_id:
            raise ValidationError("Admins cannot remove themselves; leave the organization instead")

        if not self._memberships.remove_member(user_id=target_user_id, organization_id=organization_id):
            raise NotFoundError("User is not a member of this organization")
        logger.info("User %s removed from organization %s by %s", target_user_id, organization_id, requester_id)

    def leave_organization(self, *, user_id: uuid.UUID, organization_id: uuid.UUID) -> None:
        self._authority.require_member(user_id, organization_id)
        self._memberships.remove_member(user_id=user_id, organization_id=organization_id)
        logger.info("User %s left organization %s", user_id, organization_id)

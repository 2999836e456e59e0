from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Address:
    zip_code: str
    complement: str
    public_place: str
    city: str
    state: str


@dataclass(frozen=True)
class Organization:
    """Tenant boundary: every timesheet belongs to exactly one organization."""

    organization_id: uuid.UUID
    name: str
    created_by: uuid.UUID
    created_at: datetime
    address: Optional[Address] = None


@dataclass(frozen=True)
class OrganizationMember:
    user_id: uuid.UUID
    name: str
    email: str
    role: Role
    joined_at: datetime

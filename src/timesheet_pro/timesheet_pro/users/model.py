from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    """Domain entity: a person who can belong to organizations.

    Plain data object; no database access here.
    """

    user_id: uuid.UUID
    name: str
    email: str
    password_hash: str
    created_at: datetime

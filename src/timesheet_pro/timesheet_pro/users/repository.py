from __future__ import annotations

import uuid
from typing import Optional, Protocol

from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, *, user: User) -> User:
        raise NotImplementedError

    def update_profile(self, user_id: uuid.UUID, *, name: str, email: str) -> bool:
        raise NotImplementedError

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local
from ..common.validators import require_email, require_length_between, require_non_empty
from ..core.constants import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH, USER_NAME_MAX_LENGTH, USER_NAME_MIN_LENGTH
from ..core.exceptions import AuthenticationError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: uuid.UUID
    name: str
    email: str


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        if not isinstance(email, str) or not isinstance(password, str):
            raise AuthenticationError("Invalid email or password")

        user = self._users.get_by_email(email.strip().lower())
        if not user:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # unknown hash method, e.g. a placeholder value
            ok = False

        if not ok:
            logger.warning("Failed login for %s", user.email)
            raise AuthenticationError("Invalid email or password")

        return SessionUser(user_id=user.user_id, name=user.name, email=user.email)


class UserService:
    """Use case: self-registration, profile lookup and profile update."""

    def __init__(self, users: UserRepository):
        self._users = users

    def _validate_name_and_email(self, name: str, email: str) -> tuple[str, str]:
        name = require_non_empty(name, "Name")
        require_length_between(name, "Name", USER_NAME_MIN_LENGTH, USER_NAME_MAX_LENGTH)
        return name, require_email(email, "Email")

    def register(self, *, name: str, email: str, password: str) -> User:
        name, email = self._validate_name_and_email(name, email)
        require_length_between(password, "Password", PASSWORD_MIN_LENGTH, PASSWORD_MAX_LENGTH)

        if self._users.get_by_email(email):
            raise ValidationError("Email is already registered")

        user = User(
            user_id=uuid.uuid4(),
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            created_at=now_local(),
        )
        created = self._users.create_user(user=user)
        logger.info("Registered user %s", created.user_id)
        return created

    def get_profile(self, user_id: uuid.UUID) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user_id: uuid.UUID, *, name: str, email: str) -> User:
        name, email = self._validate_name_and_email(name, email)
        user = self.get_profile(user_id)

        owner = self._users.get_by_email(email)
        if owner and owner.user_id != user_id:
            raise ValidationError("Email is already registered")

        if not self._users.update_profile(user_id, name=name, email=email):
            raise NotFoundError("User not found")
        logger.info("Updated profile of user %s", user_id)
        return replace(user, name=name, email=email)

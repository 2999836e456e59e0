from __future__ import annotations

import uuid
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, row_uuid
from .model import User
from .repository import UserRepository


def _to_user(row: dict) -> User:
    return User(
        user_id=row_uuid(row, "id"),
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        created_at=row["created_at"],
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, email, password_hash, created_at FROM users WHERE id=%s",
                (str(user_id),),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, email, password_hash, created_at FROM users WHERE email=%s",
                (email,),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def create_user(self, *, user: User) -> User:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(id, name, email, password_hash, created_at)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (str(user.user_id), user.name, user.email, user.password_hash, user.created_at),
            )
        return user

    def update_profile(self, user_id: uuid.UUID, *, name: str, email: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id FROM users WHERE id=%s FOR UPDATE", (str(user_id),))
            if not fetchone(cur):
                return False
            cur.execute("UPDATE users SET name=%s, email=%s WHERE id=%s", (name, email, str(user_id)))
            return True

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from lobby.errors import DuplicateUsername
from lobby.infra.db import Database
from lobby.infra.models import User


@dataclass(frozen=True)
class UserRecord:
    id: int
    username: str
    password_hash: str


@dataclass(frozen=True)
class PublicUser:
    id: int
    username: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username}


def _record(row: User) -> UserRecord:
    return UserRecord(id=row.id, username=row.username, password_hash=row.password_hash)


class CredentialStore:
    def __init__(self, db: Database):
        self._db = db

    def create_user(self, username: str, password_hash: str) -> int:
        """Insert a user and return its id.

        Uniqueness is left to the database constraint so that two concurrent
        registrations of the same name cannot both succeed.
        """
        try:
            with self._db.transaction() as s:
                row = User(username=username, password_hash=password_hash)
                s.add(row)
                s.flush()
                user_id = row.id
        except IntegrityError as e:
            if self.find_by_username(username) is not None:
                raise DuplicateUsername(username) from e
            raise
        return user_id

    def find_by_username(self, username: str) -> Optional[UserRecord]:
        with self._db.session() as s:
            row = s.scalars(select(User).where(User.username == username)).first()
            return _record(row) if row else None

    def get(self, user_id: int) -> Optional[UserRecord]:
        with self._db.session() as s:
            row = s.get(User, user_id)
            return _record(row) if row else None

    def list_all(self) -> List[PublicUser]:
        with self._db.session() as s:
            rows = s.execute(select(User.id, User.username).order_by(User.id)).all()
        return [PublicUser(id=r.id, username=r.username) for r in rows]

    def delete_user(self, user_id: int) -> bool:
        with self._db.transaction() as s:
            result = s.execute(delete(User).where(User.id == user_id))
        return bool(result.rowcount)

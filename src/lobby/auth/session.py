# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer
from sqlalchemy import delete, update

from lobby.infra.db import Database
from lobby.infra.models import Session, utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class SessionData:
    token: str
    user_id: Optional[int]
    expires_at: datetime

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None


class TokenSigner:
    """Signs the opaque session token stored in the cookie."""

    def __init__(self, secret: str, *, salt: str, max_age: int):
        if not secret:
            raise RuntimeError("Missing session signing secret")
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=salt)
        self.max_age = max_age

    def sign(self, token: str) -> str:
        return self._serializer.dumps({"t": token})

    def unsign(self, value: str) -> Optional[str]:
        if not value:
            return None
        try:
            data = self._serializer.loads(value, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        t = (data or {}).get("t") if isinstance(data, dict) else None
        t = str(t or "").strip()
        return t or None


class SessionStore:
    def __init__(self, db: Database, *, max_age: int):
        self._db = db
        self.max_age = max_age

    def create(self, user_id: Optional[int] = None) -> str:
        token = secrets.token_urlsafe(TOKEN_BYTES)
        now = utcnow()
        with self._db.transaction() as s:
            s.add(
                Session(
                    token=token,
                    user_id=user_id,
                    created_at=now,
                    expires_at=now + timedelta(seconds=self.max_age),
                )
            )
        return token

    def get(self, token: str) -> Optional[SessionData]:
        if not token:
            return None
        with self._db.session() as s:
            row = s.get(Session, token)
            if row is None:
                return None
            data = SessionData(token=row.token, user_id=row.user_id, expires_at=_as_utc(row.expires_at))
        if data.expires_at <= utcnow():
            self.destroy(token)
            return None
        return data

    def set_user(self, token: str, user_id: Optional[int]) -> None:
        with self._db.transaction() as s:
            s.execute(update(Session).where(Session.token == token).values(user_id=user_id))

    def destroy(self, token: str) -> None:
        if not token:
            return
        with self._db.transaction() as s:
            s.execute(delete(Session).where(Session.token == token))

    def purge_expired(self) -> int:
        with self._db.transaction() as s:
            result = s.execute(delete(Session).where(Session.expires_at <= utcnow()))
        count = int(result.rowcount or 0)
        if count:
            logger.info("Purged %d expired sessions", count)
        return count

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from argon2 import PasswordHasher

from lobby.auth.passwords import hash_password, verify_password
from lobby.auth.session import SessionStore
from lobby.auth.users import CredentialStore, PublicUser
from lobby.errors import DuplicateUsername, InvalidCredentials

logger = logging.getLogger(__name__)


class AccountService:
    """Register, log in and delete accounts on top of the two stores.

    Every method is synchronous and blocking; route handlers run them in the
    threadpool.
    """

    def __init__(self, users: CredentialStore, sessions: SessionStore, hasher: PasswordHasher):
        self.users = users
        self.sessions = sessions
        self.hasher = hasher
        # Verified against when the username is unknown, so both failures cost one argon2 run.
        self._dummy_hash = hasher.hash("lobby-unknown-user")

    def _start_session(self, user_id: int, previous_token: Optional[str]) -> str:
        # Always issue a fresh token so a pre-login token is never promoted.
        if previous_token:
            self.sessions.destroy(previous_token)
        return self.sessions.create(user_id=user_id)

    def register(self, username: str, password: str, *, previous_token: Optional[str] = None) -> str:
        """Create the user and return an authenticated session token."""
        pw_hash = hash_password(self.hasher, password)
        try:
            user_id = self.users.create_user(username, pw_hash)
        except DuplicateUsername:
            logger.info("Registration rejected: username already taken")
            raise
        logger.info("Registered user id=%s", user_id)
        return self._start_session(user_id, previous_token)

    def login(self, username: str, password: str, *, previous_token: Optional[str] = None) -> str:
        """Return an authenticated session token or raise InvalidCredentials.

        Unknown usernames and wrong passwords raise the same error.
        """
        u = self.users.find_by_username(username)
        ok = verify_password(self.hasher, password, u.password_hash if u else self._dummy_hash)
        if not u or not ok:
            logger.info("Failed login attempt")
            raise InvalidCredentials()
        logger.info("User id=%s logged in", u.id)
        return self._start_session(u.id, previous_token)

    def logout(self, token: Optional[str]) -> None:
        if token:
            self.sessions.destroy(token)

    def delete_account(self, user_id: int, token: Optional[str]) -> None:
        # The sessions.user_id foreign key cascades, so every session of the
        # user goes together with the row.
        removed = self.users.delete_user(user_id)
        if removed:
            logger.info("Deleted user id=%s", user_id)
        else:
            logger.warning("Delete requested for user id=%s but no row was removed", user_id)
        if token:
            self.sessions.destroy(token)

    def lobby_listing(self, user_id: int) -> Dict[str, object]:
        users: List[PublicUser] = self.users.list_all()
        current = next((u for u in users if u.id == user_id), None)
        others = [u for u in users if u.id != user_id]
        return {
            "current": current.to_dict() if current else None,
            "others": [u.to_dict() for u in others],
        }

#!/usr/bin/env python3
from __future__ import annotations

import logging
from getpass import getpass

from lobby.auth.passwords import build_hasher, hash_password
from lobby.auth.users import CredentialStore
from lobby.config import get_settings
from lobby.errors import DuplicateUsername
from lobby.infra.db import Database


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    db = Database(settings.resolved_database_url())
    db.init_schema()
    users = CredentialStore(db)
    hasher = build_hasher(time_cost=settings.hash_time_cost, memory_cost=settings.hash_memory_cost)

    username = input("Username: ")
    if not username.strip():
        raise SystemExit("Username is required")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user_id = users.create_user(username, hash_password(hasher, pw1))
    except DuplicateUsername:
        raise SystemExit(f"Username already taken: {username}")
    print(f"OK -> id={user_id} ({db.url})")


if __name__ == "__main__":
    main()

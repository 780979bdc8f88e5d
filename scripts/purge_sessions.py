#!/usr/bin/env python3
from __future__ import annotations

import logging

from lobby.auth.session import SessionStore
from lobby.config import get_settings
from lobby.infra.db import Database


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    db = Database(settings.resolved_database_url())
    db.init_schema()
    removed = SessionStore(db, max_age=settings.session_max_age).purge_expired()
    print(f"Removed {removed} expired sessions")


if __name__ == "__main__":
    main()

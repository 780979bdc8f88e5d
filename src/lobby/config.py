# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

TRUTHY = {"1", "true", "yes", "y"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in TRUTHY


class Settings(BaseModel):
    secret_key: Optional[str] = None
    data_dir: Path = Path(".data")
    database_url: str = ""

    cookie_name: str = "lobby_session"
    cookie_secure: bool = False
    session_max_age: int = 86400  # 24 hours
    session_salt: str = "lobby.session.v1"

    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False
    log_level: str = "INFO"

    # argon2 cost; None keeps argon2-cffi's defaults
    hash_time_cost: Optional[int] = None
    hash_memory_cost: Optional[int] = None

    @field_validator("session_max_age")
    @classmethod
    def _positive_max_age(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("session_max_age must be positive")
        return v

    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{(self.data_dir / 'lobby.db').resolve()}"

    def require_secret(self) -> str:
        if not self.secret_key:
            raise RuntimeError("Missing LOBBY_SECRET_KEY (or SESSION_SECRET) in environment")
        return self.secret_key


def settings_from_env() -> Settings:
    load_dotenv()
    hash_time_cost = os.getenv("LOBBY_HASH_TIME_COST")
    hash_memory_cost = os.getenv("LOBBY_HASH_MEMORY_COST")
    return Settings(
        secret_key=os.getenv("LOBBY_SECRET_KEY") or os.getenv("SESSION_SECRET") or None,
        data_dir=Path(os.getenv("LOBBY_DATA_DIR", ".data")),
        database_url=os.getenv("LOBBY_DATABASE_URL", ""),
        cookie_name=os.getenv("LOBBY_COOKIE_NAME", "lobby_session"),
        cookie_secure=_env_flag("LOBBY_COOKIE_SECURE"),
        session_max_age=int(os.getenv("LOBBY_SESSION_MAX_AGE", "86400")),
        session_salt=os.getenv("LOBBY_SESSION_SALT", "lobby.session.v1"),
        host=os.getenv("LOBBY_HOST", "0.0.0.0"),
        port=int(os.getenv("LOBBY_PORT") or os.getenv("PORT") or "3000"),
        reload=_env_flag("LOBBY_RELOAD"),
        log_level=os.getenv("LOBBY_LOG_LEVEL", "INFO").upper(),
        hash_time_cost=int(hash_time_cost) if hash_time_cost else None,
        hash_memory_cost=int(hash_memory_cost) if hash_memory_cost else None,
    )


@lru_cache
def get_settings() -> Settings:
    return settings_from_env()

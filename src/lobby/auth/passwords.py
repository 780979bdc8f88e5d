# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


def build_hasher(*, time_cost: Optional[int] = None, memory_cost: Optional[int] = None) -> PasswordHasher:
    """Parameters left as None keep argon2-cffi defaults."""
    kwargs = {}
    if time_cost is not None:
        kwargs["time_cost"] = time_cost
    if memory_cost is not None:
        kwargs["memory_cost"] = memory_cost
    return PasswordHasher(**kwargs)


def hash_password(hasher: PasswordHasher, plain: str) -> str:
    if not plain:
        raise ValueError("Empty password")
    return hasher.hash(plain)


def verify_password(hasher: PasswordHasher, plain: str, hash_value: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return hasher.verify(hash_value, plain)
    except (VerificationError, InvalidHashError):
        return False

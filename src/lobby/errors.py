# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Domain errors recovered at the route-handler boundary."""


class LobbyError(Exception):
    pass


class DuplicateUsername(LobbyError):
    def __init__(self, username: str):
        super().__init__(f"Username already taken: {username}")
        self.username = username


class InvalidCredentials(LobbyError):
    """Unknown username or wrong password. Callers must not tell them apart."""


class Unauthenticated(LobbyError):
    """A gated route was requested without a valid session."""

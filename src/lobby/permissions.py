# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from lobby.auth.session import SessionData, SessionStore, TokenSigner
from lobby.auth.users import CredentialStore
from lobby.config import Settings
from lobby.errors import Unauthenticated

LOGIN_URL = "/login"


@dataclass(frozen=True)
class CurrentUser:
    id: int
    username: str


def session_token_from_request(request: Request) -> Optional[str]:
    settings: Settings = request.app.state.settings
    signer: TokenSigner = request.app.state.signer
    return signer.unsign(request.cookies.get(settings.cookie_name, ""))


def _resolve(sessions: SessionStore, users: CredentialStore, token: Optional[str]):
    if not token:
        return None, None
    sess = sessions.get(token)
    if not sess or not sess.authenticated:
        return sess, None
    u = users.get(sess.user_id)
    if not u:
        return sess, None
    return sess, CurrentUser(id=u.id, username=u.username)


async def load_user_from_request(request: Request) -> tuple[Optional[SessionData], Optional[CurrentUser]]:
    token = session_token_from_request(request)
    return await run_in_threadpool(_resolve, request.app.state.sessions, request.app.state.users, token)


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    return getattr(request.state, "user", None)


def current_session(request: Request) -> Optional[SessionData]:
    return getattr(request.state, "session", None)


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    raise Unauthenticated()


def redirect_to_login(request: Request, exc: Unauthenticated) -> RedirectResponse:
    return RedirectResponse(url=LOGIN_URL, status_code=302)


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure}

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Tuple

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from lobby.auth.passwords import build_hasher
from lobby.auth.session import SessionStore, TokenSigner
from lobby.auth.users import CredentialStore
from lobby.config import Settings, get_settings
from lobby.errors import DuplicateUsername, InvalidCredentials, Unauthenticated
from lobby.infra.db import Database
from lobby.permissions import (
    CurrentUser,
    cookie_settings,
    current_session,
    current_user_optional,
    load_user_from_request,
    redirect_to_login,
    require_user,
)
from lobby.services.account_service import AccountService

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

DUPLICATE_MESSAGE = "Username already taken."
INVALID_LOGIN_MESSAGE = "Invalid login."
MISSING_FIELDS_MESSAGE = "Username and password are required."


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the current user."""
    base_ctx = {"current_user": current_user_optional(request)}
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


async def _read_credentials(request: Request) -> Tuple[str, str]:
    """Accept either a form-encoded or a JSON body with username/password."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
    else:
        data = await request.form()
    # Stored and looked up exactly as submitted.
    username = str(data.get("username") or "")
    password = str(data.get("password") or "")
    return username, password


def _login_redirect(request: Request, token: str, url: str = "/lobby") -> RedirectResponse:
    settings: Settings = request.app.state.settings
    signer: TokenSigner = request.app.state.signer
    resp = RedirectResponse(url=url, status_code=302)
    resp.set_cookie(
        settings.cookie_name,
        signer.sign(token),
        max_age=settings.session_max_age,
        **cookie_settings(settings),
    )
    return resp


def _logout_redirect(request: Request, url: str = "/") -> RedirectResponse:
    settings: Settings = request.app.state.settings
    resp = RedirectResponse(url=url, status_code=302)
    resp.delete_cookie(settings.cookie_name)
    return resp


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    secret = settings.require_secret()

    db = Database(settings.resolved_database_url())
    db.init_schema()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(app.state.sessions.purge_expired)
        yield
        db.dispose()

    app = FastAPI(title="Lobby", lifespan=lifespan)

    app.state.settings = settings
    app.state.db = db
    app.state.users = CredentialStore(db)
    app.state.sessions = SessionStore(db, max_age=settings.session_max_age)
    app.state.signer = TokenSigner(secret, salt=settings.session_salt, max_age=settings.session_max_age)
    app.state.hasher = build_hasher(time_cost=settings.hash_time_cost, memory_cost=settings.hash_memory_cost)
    app.state.accounts = AccountService(app.state.users, app.state.sessions, app.state.hasher)

    app.add_exception_handler(Unauthenticated, redirect_to_login)

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        request.state.session, request.state.user = await load_user_from_request(request)
        return await call_next(request)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/", response_class=HTMLResponse)
    def index(request: Request):
        if current_user_optional(request):
            return RedirectResponse(url="/lobby", status_code=302)
        return _render(request, "index.html")

    @app.get("/register", response_class=HTMLResponse)
    def register_get(request: Request):
        return _render(request, "register.html", {"error": ""})

    @app.post("/register")
    async def register_post(request: Request, accounts: AccountService = Depends(get_accounts)):
        username, password = await _read_credentials(request)
        if not username.strip() or not password:
            return _render(request, "register.html", {"error": MISSING_FIELDS_MESSAGE}, status_code=400)
        sess = current_session(request)
        try:
            token = await run_in_threadpool(
                accounts.register, username, password, previous_token=sess.token if sess else None
            )
        except DuplicateUsername:
            return _render(request, "register.html", {"error": DUPLICATE_MESSAGE, "username": username})
        return _login_redirect(request, token)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request):
        return _render(request, "login.html", {"error": ""})

    @app.post("/login")
    async def login_post(request: Request, accounts: AccountService = Depends(get_accounts)):
        username, password = await _read_credentials(request)
        if not username.strip() or not password:
            return _render(request, "login.html", {"error": MISSING_FIELDS_MESSAGE}, status_code=400)
        sess = current_session(request)
        try:
            token = await run_in_threadpool(
                accounts.login, username, password, previous_token=sess.token if sess else None
            )
        except InvalidCredentials:
            return _render(request, "login.html", {"error": INVALID_LOGIN_MESSAGE, "username": username})
        return _login_redirect(request, token)

    @app.get("/lobby", response_class=HTMLResponse)
    def lobby(request: Request, user: CurrentUser = Depends(require_user)):
        return _render(request, "lobby.html", {"user": user})

    @app.get("/api/users")
    async def api_users(user: CurrentUser = Depends(require_user), accounts: AccountService = Depends(get_accounts)):
        listing = await run_in_threadpool(accounts.lobby_listing, user.id)
        return JSONResponse(listing)

    @app.post("/delete")
    async def delete_account(
        request: Request,
        user: CurrentUser = Depends(require_user),
        accounts: AccountService = Depends(get_accounts),
    ):
        sess = current_session(request)
        await run_in_threadpool(accounts.delete_account, user.id, sess.token if sess else None)
        return _logout_redirect(request)

    @app.get("/logout")
    async def logout(request: Request, accounts: AccountService = Depends(get_accounts)):
        sess = current_session(request)
        await run_in_threadpool(accounts.logout, sess.token if sess else None)
        return _logout_redirect(request)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

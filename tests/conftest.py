import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from lobby.app import create_app
from lobby.auth.passwords import build_hasher
from lobby.auth.session import SessionStore, TokenSigner
from lobby.auth.users import CredentialStore
from lobby.config import Settings
from lobby.infra.db import Database
from lobby.services.account_service import AccountService

# Cheap argon2 parameters keep the suite fast; production uses the library defaults.
FAST_TIME_COST = 1
FAST_MEMORY_COST = 1024


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        secret_key="test-secret",
        data_dir=tmp_path,
        database_url=f"sqlite:///{tmp_path / 'lobby.db'}",
        session_max_age=3600,
        hash_time_cost=FAST_TIME_COST,
        hash_memory_cost=FAST_MEMORY_COST,
    )


@pytest.fixture()
def hasher():
    return build_hasher(time_cost=FAST_TIME_COST, memory_cost=FAST_MEMORY_COST)


@pytest.fixture()
def db(settings: Settings):
    database = Database(settings.resolved_database_url())
    database.init_schema()
    yield database
    database.dispose()


@pytest.fixture()
def users(db: Database) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture()
def sessions(db: Database) -> SessionStore:
    return SessionStore(db, max_age=3600)


@pytest.fixture()
def signer() -> TokenSigner:
    return TokenSigner("test-secret", salt="lobby.session.v1", max_age=3600)


@pytest.fixture()
def accounts(users, sessions, hasher) -> AccountService:
    return AccountService(users, sessions, hasher)


@pytest.fixture()
def app(settings: Settings):
    application = create_app(settings)
    yield application
    application.state.db.dispose()


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app, follow_redirects=False)


@pytest.fixture()
def other_client(app) -> TestClient:
    return TestClient(app, follow_redirects=False)

# tests/conftest.py
from __future__ import annotations

import asyncio
import os
import secrets
from collections.abc import Callable, Generator, Iterator
from dataclasses import replace
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")

from cipherchat.api.v1.endpoints.auth import create_access_token
from cipherchat.client.relay import RelayClient, RelayConfig
from cipherchat.core.settings import Settings
from cipherchat.db.session import Base
from cipherchat.db.session import get_db as app_get_session
from cipherchat.main import app as fastapi_app
from cipherchat.models import UserAccount
from cipherchat.services.key_directory import StoredKeyPair, encode_private_key
from cipherchat.services.keygen import KeyPair, KeyPairGenerator

TEST_DB_URL = "sqlite://"
TEST_BASE_URL = "http://test"

_TEST_SETTINGS_INSTANCE = Settings()


class InMemoryKeyDirectory:
    """Key directory kept in a dict, with an optional gate to hold loads open."""

    def __init__(self) -> None:
        self.entries: dict[str, StoredKeyPair] = {}
        self.writes: list[tuple[Any, ...]] = []
        self.gate: asyncio.Event | None = None
        self.loading = False

    async def get_public_key(self, user_id: str) -> str | None:
        entry = self.entries.get(user_id)
        return entry.public_key if entry else None

    async def store_own_key_pair(self, user_id: str, key_pair: KeyPair) -> None:
        self.writes.append(("store", user_id))
        self.entries[user_id] = StoredKeyPair(
            public_key=key_pair.public_key,
            private_key=key_pair.private_key,
            enabled=True,
        )

    async def load_own_key_pair(self, user_id: str) -> StoredKeyPair | None:
        if self.gate is not None:
            self.loading = True
            await self.gate.wait()
        return self.entries.get(user_id)

    async def set_encryption_enabled(self, user_id: str, enabled: bool) -> None:
        self.writes.append(("toggle", user_id, enabled))
        self.entries[user_id] = replace(self.entries[user_id], enabled=enabled)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url=TEST_BASE_URL) as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE


@pytest.fixture(scope="session")
def key_pair() -> KeyPair:
    """One real RSA key pair shared by the whole run."""
    return KeyPairGenerator().generate()


@pytest.fixture(scope="session")
def other_key_pair() -> KeyPair:
    """A second, unrelated RSA key pair."""
    return KeyPairGenerator().generate()


@pytest.fixture()
def fixed_generator(mocker) -> Callable[[KeyPair], Any]:
    """Build generators that hand out a pre-computed key pair instead of a new one."""

    def _make(pair: KeyPair) -> Any:
        generator = mocker.Mock(spec=KeyPairGenerator)
        generator.generate.return_value = pair
        return generator

    return _make


@pytest.fixture()
def memory_directory() -> InMemoryKeyDirectory:
    return InMemoryKeyDirectory()


@pytest.fixture()
def user_factory(db_session: Session) -> Callable[..., UserAccount]:
    """Persist users, optionally with a published key pair."""

    def _make(
        display_name: str,
        *,
        keys: KeyPair | None = None,
        enabled: bool = True,
    ) -> UserAccount:
        user = UserAccount(
            user_id=secrets.token_hex(14),
            display_name=display_name,
            email=f"{display_name.lower().replace(' ', '.')}@example.com",
            has_encryption_enabled=keys is not None and enabled,
        )
        if keys is not None:
            user.public_key = keys.public_key
            user.private_key = encode_private_key(keys.private_key)
        db_session.add(user)
        db_session.flush()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def test_user(user_factory: Callable[..., UserAccount]) -> UserAccount:
    """Create and return a persisted test user without keys."""
    return user_factory("Test User")


@pytest.fixture()
def other_user(user_factory: Callable[..., UserAccount]) -> UserAccount:
    """Create and return a second persisted user without keys."""
    return user_factory("Other User")


@pytest.fixture()
def auth_token(test_user: UserAccount) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    token = create_access_token(test_user.user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def other_auth_token(other_user: UserAccount) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    token = create_access_token(other_user.user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def relay_factory(app: FastAPI):
    """Build relay clients that talk to the app in-process."""
    relays: list[RelayClient] = []

    def _make(token: str | None = None) -> RelayClient:
        relay = RelayClient(
            RelayConfig(base_url=TEST_BASE_URL, timeout_seconds=5.0),
            token=token,
            transport=httpx.ASGITransport(app=app),
        )
        relays.append(relay)
        return relay

    yield _make

    for relay in relays:
        await relay.close()

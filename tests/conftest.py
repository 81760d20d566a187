# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import timedelta
from typing import Any

import base58
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from nacl.signing import SigningKey
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("SERVER_NAME", "example.org")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from wallet_bridge.api.v1 import dependencies
from wallet_bridge.core.settings import settings
from wallet_bridge.db.session import Base
from wallet_bridge.directory import DelegationProgram, DirectoryClient, KeypairWallet, Ledger
from wallet_bridge.main import app as fastapi_app
from wallet_bridge.services.homeserver import LocalSessionProvider
from wallet_bridge.services.nonce_store import NonceStore

TEST_DB_URL = "sqlite://"
TEST_SERVER_NAME = "example.org"
TEST_LEDGER_TIME = 1_700_000_000
STARTING_LAMPORTS = 1_000_000_000

PROGRAM_ID = base58.b58decode(settings.directory_program_id)


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def address_of(signing_key: SigningKey) -> str:
    return base58.b58encode(signing_key.verify_key.encode()).decode()


def sign_b58(signing_key: SigningKey, message: bytes | str) -> str:
    if isinstance(message, str):
        message = message.encode("utf-8")
    return base58.b58encode(signing_key.sign(message).signature).decode()


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
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    try:
        yield factory
    finally:
        # Ensure each test sees a clean ledger.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def nonce_store(clock: FakeClock) -> NonceStore:
    return NonceStore(TEST_SERVER_NAME, ttl_seconds=300, max_entries=64, clock=clock)


@pytest.fixture()
def session_provider() -> LocalSessionProvider:
    return LocalSessionProvider(
        TEST_SERVER_NAME,
        secret_key=settings.secret_key,
        algorithm=settings.jwt_algorithm,
        token_ttl=timedelta(minutes=5),
    )


@pytest.fixture()
def ledger(session_factory: sessionmaker[Session]) -> Ledger:
    return Ledger(session_factory, clock=lambda: TEST_LEDGER_TIME)


@pytest.fixture()
def program(ledger: Ledger) -> DelegationProgram:
    return DelegationProgram(PROGRAM_ID, ledger)


@pytest.fixture()
def directory(ledger: Ledger, program: DelegationProgram) -> DirectoryClient:
    return DirectoryClient(ledger, program)


@pytest.fixture()
def wallet(ledger: Ledger) -> KeypairWallet:
    """Return a wallet funded well above the record rent."""
    keypair = KeypairWallet.generate()
    ledger.airdrop(keypair.public_key, STARTING_LAMPORTS)
    return keypair


@pytest.fixture()
def other_wallet(ledger: Ledger) -> KeypairWallet:
    keypair = KeypairWallet.generate()
    ledger.airdrop(keypair.public_key, STARTING_LAMPORTS)
    return keypair


@pytest.fixture()
def signing_key() -> SigningKey:
    return SigningKey.generate()


@pytest.fixture()
def wallet_identity(signing_key: SigningKey) -> dict[str, Any]:
    pubkey_bytes = signing_key.verify_key.encode()
    return {
        "signing_key": signing_key,
        "pubkey_bytes": pubkey_bytes,
        "address": address_of(signing_key),
        "localpart": "sol_" + pubkey_bytes.hex(),
    }


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    nonce_store: NonceStore,
    session_provider: LocalSessionProvider,
    ledger: Ledger,
) -> Iterator[None]:
    overrides = {
        dependencies.get_nonce_store: lambda: nonce_store,
        dependencies.get_session_provider_dep: lambda: session_provider,
        dependencies.get_ledger: lambda: ledger,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client

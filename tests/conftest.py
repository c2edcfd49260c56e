"""
tests/conftest.py -- Shared test fixtures for the account service.

This module provides:
  - FrozenClock: a settable clock for TokenService so expiry tests never sleep
  - unit fixtures: clock, encryptor, policy, secret, tokens, store, service,
    account_factory
  - _make_test_store(): isolated named shared-memory SQLite store
  - _patch_lifespan(): wires a test store and real services into app.state
  - api_client: TestClient plus an admin bearer token for integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to each
worker thread.

Environment must be set before any api/ or core/ import so get_settings()
auto-generates SECRET_KEY in dev mode, uses the cheapest bcrypt cost and does
not rate-limit the test suite's own logins.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: set before any core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_services
from auth.encryption import PasswordEncryptor
from auth.models import Account, Role
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from auth.validation import CredentialPolicy
from core.config import get_settings

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FrozenClock:
    """Callable clock returning a fixed UTC instant until advanced."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def encryptor() -> PasswordEncryptor:
    # Minimum bcrypt cost keeps the suite fast; the algorithm is unchanged.
    return PasswordEncryptor(salt_length=16, rounds=4)


@pytest.fixture
def policy() -> CredentialPolicy:
    return CredentialPolicy(min_password_length=8, salt_length=16)


@pytest.fixture
def secret() -> str:
    return TEST_SECRET


@pytest.fixture
def tokens(clock: FrozenClock, secret: str) -> TokenService:
    return TokenService(secret, timedelta(minutes=15), timedelta(days=7), clock=clock)


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store, encryptor, policy, tokens) -> AccountService:
    return AccountService(store=store, encryptor=encryptor, policy=policy, tokens=tokens)


def make_account(encryptor: PasswordEncryptor, email: str, password: str, role: Role = Role.CLIENT, **extra) -> Account:
    """Build an Account with a real hash for `password`."""
    password_hash, salt = encryptor.hash_password(password)
    return Account(
        id=str(uuid.uuid4()),
        email=email,
        password_hash=password_hash,
        salt=salt,
        role=role,
        **extra,
    )


@pytest.fixture
def account_factory(encryptor: PasswordEncryptor):
    """Return make_account bound to the test encryptor."""

    def factory(email: str, password: str, role: Role = Role.CLIENT, **extra) -> Account:
        return make_account(encryptor, email, password, role=role, **extra)

    return factory


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> AccountStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return AccountStore(f"sqlite:///file:test_accounts_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: AccountStore):
    """Return a lifespan that uses the given store with real, settings-built services."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = store
        app.state.token_service, app.state.account_service = build_services(get_settings(), store)
        yield

    return test_lifespan


ADMIN_EMAIL = "admin@storybook.test"
ADMIN_PASSWORD = "AdminPass123"


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    The admin is inserted directly into the store (sign-up never grants the
    admin role) and its access token is issued by the same TokenService the
    app uses.
    """
    store = _make_test_store(uuid.uuid4().hex[:8])
    settings = get_settings()
    encryptor = PasswordEncryptor(salt_length=settings.salt_length, rounds=settings.bcrypt_rounds)
    admin = make_account(encryptor, ADMIN_EMAIL, ADMIN_PASSWORD, role=Role.ADMIN, name="Ada")
    store.create(admin)

    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, raise_server_exceptions=True) as client:
        token = app.state.token_service.issue_access_token(admin.id, Role.ADMIN).token
        yield client, token, admin.id

    store.close()


@pytest.fixture(scope="module")
def admin_credentials() -> tuple[str, str]:
    """(email, password) of the admin seeded by api_client."""
    return ADMIN_EMAIL, ADMIN_PASSWORD

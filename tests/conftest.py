"""Pytest configuration and fixtures"""
import os

# Must be set before the application modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ["TOKEN_REAPER_ENABLED"] = "false"

from datetime import datetime, timedelta
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from sessionguard.api.deps import get_codec
from sessionguard.core.lifecycle import TokenLifecycleManager
from sessionguard.core.service import AuthService
from sessionguard.core.store import CredentialStore
from sessionguard.database import Base, build_engine, get_db
from sessionguard.main import app
from sessionguard.middleware.rate_limit import limiter
from sessionguard.utils.jwt_utils import TokenCodec

TEST_DATABASE_URL = "sqlite:///./test.db"

engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """Session factory bound to the test database"""
    return TestingSessionLocal


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture
def codec(clock: FrozenClock) -> TokenCodec:
    return TokenCodec(ACCESS_SECRET, REFRESH_SECRET, clock=clock)


@pytest.fixture
def store(db: Session) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture
def lifecycle(store: CredentialStore, codec: TokenCodec, clock: FrozenClock) -> TokenLifecycleManager:
    return TokenLifecycleManager(store, codec, clock=clock)


@pytest.fixture
def service(store: CredentialStore, lifecycle: TokenLifecycleManager) -> AuthService:
    return AuthService(store, lifecycle)


@pytest.fixture(scope="function")
def client(db: Session, codec: TokenCodec) -> Generator[TestClient, None, None]:
    """Create test client with database session and codec overrides.

    The base URL is https so the Secure token cookies are sent back.
    """

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_codec] = lambda: codec
    limiter.reset()
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_user_data() -> dict:
    """Sample registration payload"""
    return {
        "email": "ada@example.com",
        "password": "correct-horse-battery",
        "name": "Ada Lovelace"
    }

# tests/conftest.py
import os
import time

# Settings are read at import time; point everything at local fakes first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.auth import get_cache_invalidator, get_identity_provider
from app.core.cache import CacheInvalidator
from app.core.config import get_settings
from app.core.identity_provider import IdentityProvider
from app.database import get_session
from app.main import app
from app.schemas.identity import Identity, IdentityMetadata


class FakeIdentityProvider(IdentityProvider):
    """Records role write-backs instead of calling Supabase Auth."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.fail = False

    def set_role(self, identity_id: str, role: str) -> None:
        self.calls.append((identity_id, role))
        if self.fail:
            raise RuntimeError("auth admin API unavailable")


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def invalidations() -> list[tuple[str, list[str]]]:
    return []


@pytest.fixture
def invalidator(invalidations) -> CacheInvalidator:
    inv = CacheInvalidator()
    inv.subscribe(lambda identity_id, paths: invalidations.append((identity_id, paths)))
    return inv


@pytest.fixture
def make_identity():
    def _make(
        identity_id: str,
        role: str | None = None,
        email: str | None = None,
        **kwargs,
    ) -> Identity:
        return Identity(
            id=identity_id,
            email=email or f"{identity_id}@example.com",
            metadata=IdentityMetadata(role=role),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_headers():
    """Build an Authorization header carrying a signed Supabase-style JWT."""
    settings = get_settings()

    def _make(
        sub: str,
        email: str | None = None,
        app_metadata: dict | None = None,
        user_metadata: dict | None = None,
        expires_in: int = 3600,
    ) -> dict[str, str]:
        claims = {
            "sub": sub,
            "email": email or f"{sub}@example.com",
            "aud": "authenticated",
            "exp": int(time.time()) + expires_in,
            "app_metadata": app_metadata or {},
            "user_metadata": user_metadata or {},
        }
        token = jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture(name="client")
def client_fixture(engine, identity_provider, invalidator):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_cache_invalidator] = lambda: invalidator

    # No context manager: the lifespan would create tables on the app engine.
    yield TestClient(app)

    app.dependency_overrides.clear()

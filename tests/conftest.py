"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["IMPORT_CADDYFILE"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.db.models import Base, ForwardScheme, ProxyHost
from app.proxy_hosts.schemas import ProxyHostFields
from app.proxy_hosts.service import ProxyHostService

# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    # Import here to ensure env vars are set
    from app.dependencies import get_db
    from app.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with a small upload limit, independent of any .env file."""
    return Settings(_env_file=None, import_max_bytes=4096, import_commit_timeout_seconds=300)


@pytest.fixture
def existing_host(db: Session) -> ProxyHost:
    """Create an inventory host serving app.local.dev."""
    service = ProxyHostService(db)
    return service.create_host(
        ProxyHostFields(
            name="App",
            domains=["app.local.dev"],
            forward_scheme=ForwardScheme.HTTP,
            forward_host="10.0.0.5",
            forward_port=3000,
            ssl_forced=True,
        )
    )


@pytest.fixture
def caddyfile() -> str:
    """Caddyfile with one domain that collides with existing_host and one new one."""
    return """
app.local.dev {
    reverse_proxy app:8080
}

new.dev {
    reverse_proxy localhost:9000
}
"""

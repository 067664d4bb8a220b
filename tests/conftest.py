"""Shared pytest fixtures; unit tests run against SQLite in-memory."""

import logging
from uuid import uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.notesync.config import Settings
from src.notesync.core.models import BaseModel, User
from src.notesync.security import Identity, create_identity_token
from src.notesync.security.password import hash_password

# aiosqlite logs every statement at DEBUG
logging.getLogger("aiosqlite").setLevel(logging.WARNING)

TEST_PASSWORD = "TestPassword123!"


@pytest.fixture
def test_settings(tmp_path):
    """Settings for tests: file database under tmp_path, no log files."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'notesync.db'}",
        log_to_file=False,
        debug=True,
        realtime_relay_enabled=False,
    )


@pytest.fixture
async def test_engine():
    """SQLite in-memory engine shared across sessions of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,  # keep the same memory DB across connections
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    """Factory creating users directly in the database."""

    async def _make_user(name: str = "User", email: str = None) -> User:
        email = email or f"{name.lower()}_{uuid4().hex[:8]}@example.com"
        async with session_factory() as session:
            user = User(email=email, name=name, password_hash=hash_password(TEST_PASSWORD))
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user


def identity_of(user: User) -> Identity:
    return Identity(id=str(user.id), email=user.email, name=user.name)


@pytest.fixture
def identity_for():
    return identity_of


@pytest.fixture
def token_for():
    """Bearer token for a user row."""

    def _token_for(user: User) -> str:
        return create_identity_token(identity_of(user))

    return _token_for

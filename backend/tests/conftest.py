"""
Pytest configuration and fixtures.

Provides fixtures for:
- An in-memory SQLite database with SAVEPOINT support
- HTTP client wired to the test session and a static track catalog
- Users with bearer tokens, and helpers to mint and grant cards
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wav.api.deps import get_catalog
from wav.core.config import settings
from wav.core.constants import AcquiredVia
from wav.db.base import Base
from wav.db.session import get_db
from wav.main import app
from wav.models import Card, User, UserCard
from wav.services.catalog import CatalogTrack, StaticCatalog

# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed reference instant for time-dependent tests
T0 = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    # pysqlite's implicit transaction handling breaks SAVEPOINT; take it over
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


# -----------------------------------------------------------------------------
# Factories
# -----------------------------------------------------------------------------

async def make_user(db: AsyncSession, username: str, **fields) -> User:
    user = User(username=username, email=f"{username}@example.com", **fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_card(
    db: AsyncSession,
    track_id: str,
    momentum: int = 50,
    created_at: datetime = T0,
    **fields,
) -> Card:
    fields.setdefault("song_name", f"Song {track_id}")
    fields.setdefault("artist_name", "Test Artist")
    card = Card(external_track_id=track_id, momentum=momentum, created_at=created_at, **fields)
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return card


async def grant(
    db: AsyncSession,
    user: User,
    card: Card,
    via: AcquiredVia = AcquiredVia.UNBOX,
    sync_aggregates: bool = True,
) -> UserCard:
    """Give a card to a user, keeping cached momentum/count in step."""
    ownership = UserCard(user_id=user.id, card_id=card.id, acquired_via=via, acquired_at=card.created_at)
    db.add(ownership)
    if sync_aggregates:
        user.total_momentum += card.momentum
        user.cards_collected += 1
    await db.commit()
    return ownership


def token_for(user: User) -> str:
    """A bearer token shaped like the auth provider's."""
    claims = {
        "sub": str(user.id),
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    if settings.auth_jwt_audience:
        claims["aud"] = settings.auth_jwt_audience
    return jwt.encode(claims, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


def auth_headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


# -----------------------------------------------------------------------------
# User Fixtures
# -----------------------------------------------------------------------------

@pytest_asyncio.fixture
async def alice(db_session) -> User:
    return await make_user(db_session, "alice")


@pytest_asyncio.fixture
async def bob(db_session) -> User:
    return await make_user(db_session, "bob")


@pytest.fixture
def alice_headers(alice) -> dict:
    return auth_headers_for(alice)


@pytest.fixture
def bob_headers(bob) -> dict:
    return auth_headers_for(bob)


# -----------------------------------------------------------------------------
# Catalog and HTTP client
# -----------------------------------------------------------------------------

@pytest.fixture
def catalog_tracks() -> list[CatalogTrack]:
    return [
        CatalogTrack(external_id="trk-pop-1", name="Pop One", artists=["A"], popularity=60, genre="pop"),
        CatalogTrack(external_id="trk-pop-2", name="Pop Two", artists=["B"], popularity=40, genre="pop"),
        CatalogTrack(external_id="trk-rock-1", name="Rock One", artists=["C"], popularity=80, genre="rock"),
    ]


@pytest.fixture
def static_catalog(catalog_tracks) -> StaticCatalog:
    return StaticCatalog(catalog_tracks)


@pytest_asyncio.fixture(scope="function")
async def client(db_session, static_catalog) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test session and static catalog."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog] = lambda: static_catalog

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


class Factory:
    """Session-bound shortcuts for building test data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def user(self, username: str, **fields) -> User:
        return await make_user(self.db, username, **fields)

    async def card(self, track_id: str, momentum: int = 50, created_at: datetime = T0, **fields) -> Card:
        return await make_card(self.db, track_id, momentum, created_at, **fields)

    async def grant(self, user: User, card: Card, **kwargs) -> UserCard:
        return await grant(self.db, user, card, **kwargs)

    async def owned_card(self, user: User, track_id: str, momentum: int = 50, created_at: datetime = T0) -> Card:
        card = await self.card(track_id, momentum, created_at)
        await self.grant(user, card)
        return card


@pytest.fixture
def factory(db_session) -> Factory:
    return Factory(db_session)


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def headers_for():
    """Build bearer headers for users created inside a test."""
    return auth_headers_for

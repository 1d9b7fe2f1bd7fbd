import os

# must be set before pageturn is imported
os.environ.setdefault("SECRET", "test-secret-not-for-production")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pageturn.database import Base, get_db
from pageturn.models import Chapter, Series, SeriesStatus, SeriesType, User


@pytest_asyncio.fixture
async def engine():
    # one shared in-memory connection; sessions see each other's uncommitted rows
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        pool_reset_on_return=None,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


def make_user(name: str, **kw) -> User:
    return User(email=f"{name}@example.com", username=name, hashed_password="not-a-real-hash", **kw)


@pytest_asyncio.fixture
async def seed(db):
    reader = make_user("reader")
    friend = make_user("friend")
    creator = make_user("inkwell", is_creator=True, creator_display_name="Inkwell Studio")
    db.add_all([reader, friend, creator])
    await db.flush()

    moonlit = Series(title="Moonlit Tides", author_id=creator.id, type=SeriesType.novel, genres=["fantasy", "romance"])
    orchard = Series(title="Iron Orchard", author_id=creator.id, type=SeriesType.manga,
                     status=SeriesStatus.completed, genres=["scifi"])
    db.add_all([moonlit, orchard])
    await db.flush()

    chapters = [Chapter(series_id=moonlit.id, title=f"Tide {n}", chapter_number=n) for n in (1, 2, 3)]
    orchard_ch = Chapter(series_id=orchard.id, title="Seedling", chapter_number=1)
    db.add_all(chapters + [orchard_ch])
    await db.commit()

    return SimpleNamespace(
        reader=reader,
        friend=friend,
        creator=creator,
        moonlit=moonlit,
        orchard=orchard,
        chapters=chapters,
        orchard_ch=orchard_ch,
    )


def days_ago(n: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=n)


@pytest_asyncio.fixture
async def client(session_maker, seed):
    from pageturn.main import app
    from pageturn.utils import get_current_user, require_authenticated_user

    auth = SimpleNamespace(user=seed.reader)

    async def _db():
        async with session_maker() as session:
            yield session

    async def _required():
        if auth.user is None:
            from fastapi import HTTPException
            raise HTTPException(status_code=401, detail="Not authenticated")
        return auth.user

    async def _optional():
        return auth.user

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[require_authenticated_user] = _required
    app.dependency_overrides[get_current_user] = _optional

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.auth_state = auth
        yield ac

    app.dependency_overrides.clear()

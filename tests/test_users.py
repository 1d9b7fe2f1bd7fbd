import pytest
from fastapi_users import InvalidPasswordException
from fastapi_users.db import SQLAlchemyUserDatabase

from pageturn.models import ReadingProfile, User
from pageturn.users import ReaderManager


@pytest.fixture
def manager(db):
    return ReaderManager(SQLAlchemyUserDatabase(db, User))


async def test_registration_seeds_reading_profile(db, seed, manager):
    await manager.on_after_register(seed.friend)

    profile = await db.get(ReadingProfile, seed.friend.id)
    assert profile is not None
    assert profile.chapters_read == 0
    assert profile.reading_streak == 0


async def test_short_password_rejected(manager):
    with pytest.raises(InvalidPasswordException):
        await manager.validate_password("short", None)


async def test_reasonable_password_accepted(manager):
    await manager.validate_password("a-long-enough-one", None)

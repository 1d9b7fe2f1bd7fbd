import pytest
from sqlalchemy.exc import OperationalError

from pageturn.errors import InvalidAction, NotFound
from pageturn.models import Series, SeriesStatus, TransactionKind
from pageturn.services.analytics import creator_analytics
from pageturn.services.coins import get_user_transactions, record_transaction
from pageturn.services import counters


async def test_creator_rollup(db, seed):
    await counters.increment(db, "series", seed.moonlit.id, "view_count", 120)
    await counters.increment(db, "series", seed.orchard.id, "view_count", 30)
    await counters.increment(db, "user", seed.creator.id, "followers_count", 4)
    db.add(Series(title="Dust Archive", author_id=seed.creator.id, status=SeriesStatus.hiatus, view_count=7))
    await record_transaction(db, seed.creator.id, 50, TransactionKind.unlock, seed.chapters[0].id)
    await record_transaction(db, seed.creator.id, 25, "unlock")
    await record_transaction(db, seed.creator.id, 999, "reward")
    await record_transaction(db, seed.creator.id, -10, "unlock")
    await db.commit()

    out = await creator_analytics(db, seed.creator.id)
    assert out == {"total_views": 157, "followers": 4, "coins_earned": 75, "active_series": 1}


async def test_creator_without_series(db, seed):
    out = await creator_analytics(db, seed.friend.id)
    assert out == {"total_views": 0, "followers": 0, "coins_earned": 0, "active_series": 0}


async def test_missing_creator(db, seed):
    with pytest.raises(NotFound):
        await creator_analytics(db, 9999)


class LockedSession:
    async def get(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


async def test_store_failure_degrades_to_zeroes():
    out = await creator_analytics(LockedSession(), 1)
    assert out == {"total_views": 0, "followers": 0, "coins_earned": 0, "active_series": 0}


async def test_transactions_are_listed_newest_first(db, seed):
    first = await record_transaction(db, seed.reader.id, 100, "purchase", description="starter pack")
    second = await record_transaction(db, seed.reader.id, -5, "unlock", seed.chapters[2].id)
    await db.commit()

    txs = await get_user_transactions(db, seed.reader.id)
    assert [t.id for t in txs] == [second.id, first.id]


async def test_unknown_transaction_kind(db, seed):
    with pytest.raises(InvalidAction):
        await record_transaction(db, seed.reader.id, 5, "refund")


async def test_transaction_for_unknown_chapter(db, seed):
    with pytest.raises(NotFound):
        await record_transaction(db, seed.reader.id, -5, "unlock", chapter_id=9999)

from types import SimpleNamespace

from pageturn.services.continue_reading import continue_reading, latest_per_series
from pageturn.services.ledger import record_progress


def rec(series_id, chapter_id):
    return SimpleNamespace(series_id=series_id, chapter_id=chapter_id)


def test_latest_per_series_keeps_first_seen():
    records = [rec(1, 12), rec(2, 20), rec(1, 11), rec(3, 30)]
    out = latest_per_series(records, limit=10)
    assert [(r.series_id, r.chapter_id) for r in out] == [(1, 12), (2, 20), (3, 30)]


def test_latest_per_series_stops_at_limit():
    records = [rec(1, 12), rec(2, 20), rec(3, 30)]
    assert [r.series_id for r in latest_per_series(records, limit=2)] == [1, 2]


async def test_one_entry_per_series_newest_first(db, seed):
    await record_progress(db, seed.reader.id, seed.moonlit.id, seed.chapters[0].id, 100)
    await record_progress(db, seed.reader.id, seed.orchard.id, seed.orchard_ch.id, 35)
    await record_progress(db, seed.reader.id, seed.moonlit.id, seed.chapters[1].id, 20)
    await db.commit()

    out = await continue_reading(db, seed.reader.id)
    assert [(e.series_id, e.chapter_id) for e in out] == [
        (seed.moonlit.id, seed.chapters[1].id),
        (seed.orchard.id, seed.orchard_ch.id),
    ]
    assert out[0].progress == 20
    assert out[0].series_title == "Moonlit Tides"
    assert out[0].chapter_number == 2
    assert out[1].chapter_title == "Seedling"


async def test_limit_applies_to_series(db, seed):
    await record_progress(db, seed.reader.id, seed.orchard.id, seed.orchard_ch.id, 10)
    await record_progress(db, seed.reader.id, seed.moonlit.id, seed.chapters[0].id, 10)
    await db.commit()

    out = await continue_reading(db, seed.reader.id, limit=1)
    assert [e.series_id for e in out] == [seed.moonlit.id]


async def test_other_readers_are_not_mixed_in(db, seed):
    await record_progress(db, seed.friend.id, seed.moonlit.id, seed.chapters[0].id, 10)
    await db.commit()

    assert await continue_reading(db, seed.reader.id) == []


async def test_zero_limit_returns_nothing(db, seed):
    await record_progress(db, seed.reader.id, seed.moonlit.id, seed.chapters[0].id, 10)
    await db.commit()

    assert await continue_reading(db, seed.reader.id, 0) == []

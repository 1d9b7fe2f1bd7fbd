import logging

import pytest

from pageturn.errors import InvalidAction, NotFound
from pageturn.models import FollowTarget
from pageturn.services import counters, engagement


async def test_authenticated_views_count_once(db, seed):
    ch = seed.chapters[0]
    results = [await engagement.record_view(db, seed.reader.id, ch.id) for _ in range(4)]
    await db.commit()

    assert results == [True, False, False, False]
    assert await counters.read(db, "chapter", ch.id, "view_count") == 1
    assert await counters.read(db, "series", seed.moonlit.id, "view_count") == 1


async def test_anonymous_views_always_count(db, seed):
    ch = seed.chapters[0]
    for _ in range(3):
        assert await engagement.record_view(db, None, ch.id) is True
    await db.commit()

    assert await counters.read(db, "chapter", ch.id, "view_count") == 3
    assert await counters.read(db, "series", seed.moonlit.id, "view_count") == 3


async def test_view_on_missing_chapter(db, seed):
    with pytest.raises(NotFound):
        await engagement.record_view(db, seed.reader.id, 9999)


async def test_like_toggle_round_trip(db, seed):
    ch = seed.chapters[0]
    liked = await engagement.toggle_like(db, seed.reader.id, ch.id)
    assert liked == {"liked": True, "like_count": 1}
    assert await engagement.has_liked(db, seed.reader.id, ch.id)

    unliked = await engagement.toggle_like(db, seed.reader.id, ch.id)
    await db.commit()
    assert unliked == {"liked": False, "like_count": 0}
    assert not await engagement.has_liked(db, seed.reader.id, ch.id)


async def test_likes_from_two_readers(db, seed):
    ch = seed.chapters[1]
    await engagement.toggle_like(db, seed.reader.id, ch.id)
    await engagement.toggle_like(db, seed.friend.id, ch.id)
    state = await engagement.like_state(db, seed.friend.id, ch.id)
    assert state == {"liked": True, "like_count": 2}


async def test_follow_user_is_idempotent(db, seed):
    assert await engagement.follow(db, seed.reader.id, seed.creator.id, "user") is True
    assert await engagement.follow(db, seed.reader.id, seed.creator.id, "user") is False
    await db.commit()

    assert await counters.read(db, "user", seed.creator.id, "followers_count") == 1
    assert await engagement.is_following(db, seed.reader.id, seed.creator.id)
    followers = await engagement.get_followers(db, seed.creator.id)
    assert [u.id for u in followers] == [seed.reader.id]
    following = await engagement.get_following(db, seed.reader.id)
    assert [u.id for u in following] == [seed.creator.id]


async def test_unfollow_restores_counter(db, seed):
    await engagement.follow(db, seed.reader.id, seed.creator.id, FollowTarget.user)
    assert await engagement.unfollow(db, seed.reader.id, seed.creator.id, FollowTarget.user) is True
    assert await engagement.unfollow(db, seed.reader.id, seed.creator.id, FollowTarget.user) is False
    await db.commit()

    assert await counters.read(db, "user", seed.creator.id, "followers_count") == 0
    assert not await engagement.is_following(db, seed.reader.id, seed.creator.id)


async def test_follow_series(db, seed):
    await engagement.follow(db, seed.reader.id, seed.moonlit.id, "series")
    await db.commit()

    assert await counters.read(db, "series", seed.moonlit.id, "follower_count") == 1
    followed = await engagement.get_followed_series(db, seed.reader.id)
    assert [s.id for s in followed] == [seed.moonlit.id]


async def test_cannot_follow_self(db, seed):
    with pytest.raises(InvalidAction):
        await engagement.follow(db, seed.reader.id, seed.reader.id, "user")


async def test_unknown_follow_target_type(db, seed):
    with pytest.raises(InvalidAction):
        await engagement.follow(db, seed.reader.id, seed.creator.id, "planet")


async def test_bookmark_is_idempotent(db, seed):
    assert await engagement.bookmark(db, seed.reader.id, seed.orchard.id) is True
    assert await engagement.bookmark(db, seed.reader.id, seed.orchard.id) is False
    await db.commit()
    assert await counters.read(db, "series", seed.orchard.id, "bookmark_count") == 1

    marked = await engagement.get_bookmarked_series(db, seed.reader.id)
    assert [s.id for s in marked] == [seed.orchard.id]

    assert await engagement.unbookmark(db, seed.reader.id, seed.orchard.id) is True
    assert await engagement.unbookmark(db, seed.reader.id, seed.orchard.id) is False
    await db.commit()
    assert await counters.read(db, "series", seed.orchard.id, "bookmark_count") == 0


async def test_decrement_below_zero_is_clamped(db, seed, caplog):
    caplog.set_level(logging.WARNING, logger="pageturn.services.counters")
    await counters.increment(db, "chapter", seed.chapters[0].id, "like_count", 1)

    assert await counters.decrement(db, "chapter", seed.chapters[0].id, "like_count", 3) is True
    assert await counters.read(db, "chapter", seed.chapters[0].id, "like_count") == 0
    assert "clamped to 0" in caplog.text


async def test_counter_on_missing_row(db, seed):
    assert await counters.increment(db, "series", 9999, "view_count") is False
    assert await counters.decrement(db, "series", 9999, "view_count") is False


async def test_unknown_counter_column(db, seed):
    with pytest.raises(ValueError):
        await counters.increment(db, "chapter", seed.chapters[0].id, "bookmark_count")

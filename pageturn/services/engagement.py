# pageturn/services/engagement.py
"""
Inbound engagement events: views, likes, follows and bookmarks.

Every counter change here is paired with exactly one mark row. The mark
write decides whether the counter moves, so a repeated request (or the
loser of two racing requests) leaves the counters untouched and still gets
a normal response.
"""
import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.errors import InvalidAction, NotFound, store_errors
from pageturn.models import Bookmark, Chapter, Follow, FollowTarget, Series, User
from pageturn.services import counters
from pageturn.services.guard import ActionKind, IdempotencyGuard, SqlIdempotencyGuard, insert_ignore

logger = logging.getLogger(__name__)


async def _chapter(db: AsyncSession, chapter_id: int) -> Chapter:
    chapter = await db.get(Chapter, chapter_id)
    if not chapter:
        raise NotFound(f"Chapter {chapter_id} not found")
    return chapter


async def _series(db: AsyncSession, series_id: int) -> Series:
    series = await db.get(Series, series_id)
    if not series:
        raise NotFound(f"Series {series_id} not found")
    return series


# ---------- views ----------

async def record_view(
    db: AsyncSession, user_id: Optional[int], chapter_id: int, *, guard: Optional[IdempotencyGuard] = None
) -> bool:
    """Count a chapter view. Authenticated viewers count once for life; anonymous views always count."""
    async with store_errors("record view"):
        chapter = await _chapter(db, chapter_id)
        guard = guard or SqlIdempotencyGuard(db)
        decision = await guard.should_record(user_id, chapter_id, ActionKind.view)
        if decision.record:
            await counters.increment(db, "chapter", chapter_id, "view_count")
            await counters.increment(db, "series", chapter.series_id, "view_count")
        return decision.record


# ---------- likes ----------

async def toggle_like(
    db: AsyncSession, user_id: int, chapter_id: int, *, guard: Optional[IdempotencyGuard] = None
) -> dict:
    async with store_errors("toggle like"):
        await _chapter(db, chapter_id)
        guard = guard or SqlIdempotencyGuard(db)
        decision = await guard.should_record(user_id, chapter_id, ActionKind.like)
        if decision.delta > 0:
            await counters.increment(db, "chapter", chapter_id, "like_count")
        elif decision.delta < 0:
            await counters.decrement(db, "chapter", chapter_id, "like_count")
        like_count = await counters.read(db, "chapter", chapter_id, "like_count")
    return {"liked": bool(decision.active), "like_count": like_count}


async def has_liked(db: AsyncSession, user_id: int, chapter_id: int) -> bool:
    return await SqlIdempotencyGuard(db).exists(user_id, chapter_id, ActionKind.like)


async def like_state(db: AsyncSession, user_id: int, chapter_id: int) -> dict:
    await _chapter(db, chapter_id)
    return {
        "liked": await has_liked(db, user_id, chapter_id),
        "like_count": await counters.read(db, "chapter", chapter_id, "like_count"),
    }


# ---------- follows ----------

def _target_type(target_type) -> FollowTarget:
    try:
        return FollowTarget(target_type)
    except ValueError:
        raise InvalidAction("targetType must be 'user' or 'series'") from None


async def _check_follow_target(db: AsyncSession, user_id: int, target_id: int, target_type: FollowTarget):
    if target_type == FollowTarget.user:
        if target_id == user_id:
            raise InvalidAction("Users cannot follow themselves")
        if not await db.get(User, target_id):
            raise NotFound(f"User {target_id} not found")
    else:
        await _series(db, target_id)


async def _adjust_followers(db: AsyncSession, target_id: int, target_type: FollowTarget, delta: int):
    if target_type == FollowTarget.user:
        await counters.increment(db, "user", target_id, "followers_count", delta)
    else:
        await counters.increment(db, "series", target_id, "follower_count", delta)


async def follow(db: AsyncSession, user_id: int, target_id: int, target_type) -> bool:
    """Returns True if this call created the follow."""
    target_type = _target_type(target_type)
    async with store_errors("follow"):
        await _check_follow_target(db, user_id, target_id, target_type)
        created = await insert_ignore(
            db, Follow, {"user_id": user_id, "target_id": target_id, "target_type": target_type}
        )
        if created:
            await _adjust_followers(db, target_id, target_type, +1)
            logger.info("User %s followed %s %s", user_id, target_type.value, target_id)
        return created


async def unfollow(db: AsyncSession, user_id: int, target_id: int, target_type) -> bool:
    """Returns True if this call removed an existing follow."""
    target_type = _target_type(target_type)
    async with store_errors("unfollow"):
        res = await db.execute(
            delete(Follow).where(
                Follow.user_id == user_id,
                Follow.target_id == target_id,
                Follow.target_type == target_type,
            )
        )
        removed = bool(res.rowcount)
        if removed:
            await _adjust_followers(db, target_id, target_type, -1)
            logger.info("User %s unfollowed %s %s", user_id, target_type.value, target_id)
        return removed


async def is_following(db: AsyncSession, user_id: int, target_id: int, target_type="user") -> bool:
    found = await db.scalar(
        select(Follow.id).where(
            Follow.user_id == user_id,
            Follow.target_id == target_id,
            Follow.target_type == _target_type(target_type),
        ).limit(1)
    )
    return found is not None


async def get_followed_series(db: AsyncSession, user_id: int) -> list[Series]:
    rows = await db.execute(
        select(Series)
        .join(Follow, Follow.target_id == Series.id)
        .where(Follow.user_id == user_id, Follow.target_type == FollowTarget.series)
        .order_by(Follow.created_at.desc())
    )
    return list(rows.scalars().all())


async def get_followers(db: AsyncSession, user_id: int) -> list[User]:
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.user_id == User.id)
        .where(Follow.target_id == user_id, Follow.target_type == FollowTarget.user)
        .order_by(Follow.created_at.desc())
    )
    return list(rows.scalars().all())


async def get_following(db: AsyncSession, user_id: int) -> list[User]:
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.target_id == User.id)
        .where(Follow.user_id == user_id, Follow.target_type == FollowTarget.user)
        .order_by(Follow.created_at.desc())
    )
    return list(rows.scalars().all())


# ---------- bookmarks ----------

async def bookmark(db: AsyncSession, user_id: int, series_id: int) -> bool:
    async with store_errors("bookmark"):
        await _series(db, series_id)
        created = await insert_ignore(db, Bookmark, {"user_id": user_id, "series_id": series_id})
        if created:
            await counters.increment(db, "series", series_id, "bookmark_count")
        return created


async def unbookmark(db: AsyncSession, user_id: int, series_id: int) -> bool:
    async with store_errors("unbookmark"):
        res = await db.execute(
            delete(Bookmark).where(Bookmark.user_id == user_id, Bookmark.series_id == series_id)
        )
        removed = bool(res.rowcount)
        if removed:
            await counters.decrement(db, "series", series_id, "bookmark_count")
        return removed


async def get_bookmarked_series(db: AsyncSession, user_id: int) -> list[Series]:
    rows = await db.execute(
        select(Series)
        .join(Bookmark, Bookmark.series_id == Series.id)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc())
    )
    return list(rows.scalars().all())

# pageturn/services/ledger.py
"""
Reading activity ledger.

record_progress() is the only writer of ReadingProfile. Every call appends a
ReadingActivity row and refreshes the displayed percentage; a call at 100%
goes through the idempotency guard and only the first completion of a
(user, chapter) pair is counted.

None of these coroutines commit: the caller owns the transaction, so the
activity row, the completion mark and the counter change land together.
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.errors import InvalidAction, NotFound, store_errors
from pageturn.models import (
    Bookmark,
    Chapter,
    ChapterCompletion,
    ChapterLike,
    Follow,
    FollowTarget,
    ReadingActivity,
    ReadingProfile,
    ReadingProgress,
    Series,
    User,
)
from pageturn.services import counters
from pageturn.services.guard import ActionKind, IdempotencyGuard, SqlIdempotencyGuard, insert_ignore
from pageturn.services.streak import add_reading_date, compute_streak, ledger_today
from pageturn.settings.config import settings

logger = logging.getLogger(__name__)

COMPLETE = 100.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProgressResult:
    progress: float
    completed: bool
    # True only for the request that counted the completion
    fresh: bool


async def _get_chapter(db: AsyncSession, series_id: int, chapter_id: int) -> Chapter:
    chapter = await db.get(Chapter, chapter_id)
    if not chapter or chapter.series_id != series_id:
        raise NotFound(f"Chapter {chapter_id} not found in series {series_id}")
    return chapter


async def _require_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user


async def _upsert_progress(db: AsyncSession, user_id: int, series_id: int, chapter_id: int, percent: float):
    values = {"user_id": user_id, "series_id": series_id, "chapter_id": chapter_id, "progress": percent}
    if await insert_ignore(db, ReadingProgress, values):
        return
    await db.execute(
        update(ReadingProgress)
        .where(
            ReadingProgress.user_id == user_id,
            ReadingProgress.series_id == series_id,
            ReadingProgress.chapter_id == chapter_id,
        )
        .values(progress=percent, updated_at=_now())
    )


async def ensure_profile(db: AsyncSession, user_id: int) -> None:
    await insert_ignore(db, ReadingProfile, {"user_id": user_id, "chapters_read": 0, "reading_streak": 0})


async def _mark_reading_day(
    db: AsyncSession, user_id: int, series_id: int, chapter_id: int, today: date
) -> ReadingProfile:
    # read-then-write, scoped to one user's row (row lock where the store has one)
    profile = (
        await db.execute(
            select(ReadingProfile)
            .where(ReadingProfile.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    ).scalars().one()
    dates = add_reading_date(profile.reading_dates, today, settings.READING_DATES_CAP)
    profile.reading_dates = dates
    profile.reading_streak = compute_streak(dates, today)
    profile.last_read_at = _now()
    profile.last_read_chapter_id = chapter_id
    profile.last_read_series_id = series_id
    await db.flush()
    return profile


async def record_progress(
    db: AsyncSession,
    user_id: int,
    series_id: int,
    chapter_id: int,
    percent: float,
    *,
    today: Optional[date] = None,
    guard: Optional[IdempotencyGuard] = None,
) -> ProgressResult:
    try:
        percent = float(percent)
    except (TypeError, ValueError):
        raise InvalidAction("progress must be a number between 0 and 100") from None
    if not math.isfinite(percent) or percent < 0:
        raise InvalidAction("progress must be a number between 0 and 100")
    percent = min(percent, COMPLETE)

    async with store_errors("record progress"):
        await _require_user(db, user_id)
        await _get_chapter(db, series_id, chapter_id)

        db.add(ReadingActivity(user_id=user_id, series_id=series_id, chapter_id=chapter_id, progress=percent))
        await _upsert_progress(db, user_id, series_id, chapter_id, percent)
        await db.flush()

        if percent < COMPLETE:
            return ProgressResult(progress=percent, completed=False, fresh=False)

        guard = guard or SqlIdempotencyGuard(db)
        decision = await guard.should_record(user_id, chapter_id, ActionKind.completion, series_id=series_id)
        today = today or ledger_today()

        if decision.record:
            await ensure_profile(db, user_id)
            await counters.increment(db, "profile", user_id, "chapters_read")
            profile = await _mark_reading_day(db, user_id, series_id, chapter_id, today)
            logger.info(
                "User %s completed chapter %s (total=%s streak=%s)",
                user_id, chapter_id, profile.chapters_read, profile.reading_streak,
            )
        elif settings.REREAD_EXTENDS_STREAK:
            # re-read of a finished chapter: counts as a reading day, never as a chapter
            await ensure_profile(db, user_id)
            await _mark_reading_day(db, user_id, series_id, chapter_id, today)
            logger.debug("User %s re-read chapter %s; reading day recorded", user_id, chapter_id)

        return ProgressResult(progress=percent, completed=True, fresh=decision.record)


async def get_reading_history(db: AsyncSession, user_id: int, limit: int = 50) -> list[ReadingActivity]:
    rows = await db.execute(
        select(ReadingActivity)
        .where(ReadingActivity.user_id == user_id)
        .order_by(ReadingActivity.created_at.desc(), ReadingActivity.id.desc())
        .limit(limit)
    )
    return list(rows.scalars().all())


async def _count(db: AsyncSession, stmt) -> int:
    return int(await db.scalar(stmt) or 0)


async def _favorite_genre(db: AsyncSession, user_id: int) -> Optional[str]:
    rows = (
        await db.execute(
            select(Series.genres)
            .join(ReadingProgress, ReadingProgress.series_id == Series.id)
            .where(ReadingProgress.user_id == user_id)
        )
    ).scalars().all()
    tally = Counter(g[0] for g in rows if g)
    if not tally:
        return None
    return tally.most_common(1)[0][0]


async def get_profile_stats(db: AsyncSession, user_id: int, *, today: Optional[date] = None) -> dict:
    """
    Reading summary for a profile page.

    The streak is recomputed from the stored date set; if the cached
    reading_streak disagrees it is rewritten (the date set wins).
    """
    user = await _require_user(db, user_id)
    today = today or ledger_today()
    profile = await db.get(ReadingProfile, user_id)

    streak = 0
    if profile:
        streak = compute_streak(profile.reading_dates or [], today)
        if streak != profile.reading_streak:
            logger.info(
                "Reconciling streak for user %s: cached=%s recomputed=%s",
                user_id, profile.reading_streak, streak,
            )
            profile.reading_streak = streak
            await db.flush()

    week_ago = _now() - timedelta(days=7)
    read_this_week = await _count(
        db,
        select(func.count(ChapterCompletion.id)).where(
            ChapterCompletion.user_id == user_id, ChapterCompletion.completed_at >= week_ago
        ),
    )
    likes_given = await _count(db, select(func.count(ChapterLike.id)).where(ChapterLike.user_id == user_id))
    series_followed = await _count(
        db,
        select(func.count(Follow.id)).where(
            Follow.user_id == user_id, Follow.target_type == FollowTarget.series
        ),
    )
    following = await _count(
        db,
        select(func.count(Follow.id)).where(
            Follow.user_id == user_id, Follow.target_type == FollowTarget.user
        ),
    )
    bookmarked = await _count(db, select(func.count(Bookmark.id)).where(Bookmark.user_id == user_id))

    return {
        "chapters_read": profile.chapters_read if profile else 0,
        "reading_streak": streak,
        "chapters_read_this_week": read_this_week,
        "total_likes_given": likes_given,
        "series_followed": series_followed,
        "series_bookmarked": bookmarked,
        "followers_count": user.followers_count or 0,
        "following_count": following,
        "favorite_genre": await _favorite_genre(db, user_id),
        "last_read_at": profile.last_read_at if profile else None,
        "last_read_chapter_id": profile.last_read_chapter_id if profile else None,
        "last_read_series_id": profile.last_read_series_id if profile else None,
    }


async def get_series_progress(db: AsyncSession, user_id: int, series_id: int) -> dict:
    if not await db.get(Series, series_id):
        raise NotFound(f"Series {series_id} not found")

    total = await _count(db, select(func.count(Chapter.id)).where(Chapter.series_id == series_id))
    read = await _count(
        db,
        select(func.count(ChapterCompletion.id)).where(
            ChapterCompletion.user_id == user_id, ChapterCompletion.series_id == series_id
        ),
    )
    last = (
        await db.execute(
            select(ReadingProgress.chapter_id)
            .where(ReadingProgress.user_id == user_id, ReadingProgress.series_id == series_id)
            .order_by(ReadingProgress.updated_at.desc(), ReadingProgress.id.desc())
            .limit(1)
        )
    ).scalar()
    return {
        "series_id": series_id,
        "read_chapters": read,
        "total_chapters": total,
        "progress": round(read / total * 100) if total else 0,
        "last_read_chapter_id": last,
    }

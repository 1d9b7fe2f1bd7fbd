# pageturn/services/ranking.py
"""
Trending / rising rankings, computed per request straight from the counters.

Series:
  trending  view_count DESC, bookmark_count DESC
  rising    created within RISING_WINDOW_DAYS and view_count > RISING_MIN_VIEWS,
            then view_count DESC, created_at DESC
Creators:
  trending  followers_count DESC, total series views DESC
  rising    account created within RISING_WINDOW_DAYS and
            followers_count > RISING_MIN_FOLLOWERS, then followers DESC, created_at DESC

The window hint ("today", "week", "month", "all") is validated and accepted
but does not change the result: counters are all-time, there are no
windowed counters to filter on.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.errors import InvalidAction
from pageturn.models import Series, User
from pageturn.settings.config import settings

logger = logging.getLogger(__name__)

WINDOW_HINTS = ("today", "week", "month", "all")


class EntityKind(str, enum.Enum):
    series = "series"
    creator = "creator"


@dataclass
class RankedEntry:
    entity_id: int
    score: int        # view_count for series, followers_count for creators
    tie_break: int    # bookmark_count for series, total series views for creators
    created_at: Optional[datetime] = None
    title: Optional[str] = None      # series title or creator display name
    author_id: Optional[int] = None  # series only


def normalize_window_hint(hint: Optional[str]) -> str:
    value = (hint or "all").strip().lower()
    if value not in WINDOW_HINTS:
        raise InvalidAction(f"timeframe must be one of {', '.join(WINDOW_HINTS)}")
    if value != "all":
        logger.debug("window hint %r is advisory; ranking uses all-time counters", value)
    return value


def _series_entry(s: Series) -> RankedEntry:
    return RankedEntry(
        entity_id=s.id,
        score=s.view_count or 0,
        tie_break=s.bookmark_count or 0,
        created_at=s.created_at,
        title=s.title,
        author_id=s.author_id,
    )


def _creators_query():
    total_views = func.coalesce(func.sum(Series.view_count), 0).label("total_views")
    stmt = (
        select(User, total_views)
        .outerjoin(Series, Series.author_id == User.id)
        .where(User.is_creator.is_(True))
        .group_by(User.id)
    )
    return stmt, total_views


def _creator_entry(user: User, total_views) -> RankedEntry:
    return RankedEntry(
        entity_id=user.id,
        score=user.followers_count or 0,
        tie_break=int(total_views or 0),
        created_at=user.created_at,
        title=user.creator_display_name or user.username,
    )


async def trending(
    db: AsyncSession, kind: EntityKind, window_hint: Optional[str] = None, limit: Optional[int] = None
) -> list[RankedEntry]:
    normalize_window_hint(window_hint)
    kind = EntityKind(kind)
    if limit is not None and limit <= 0:
        return []
    try:
        if kind == EntityKind.series:
            limit = settings.TRENDING_LIMIT if limit is None else limit
            rows = await db.execute(
                select(Series)
                .order_by(Series.view_count.desc(), Series.bookmark_count.desc(), Series.id.asc())
                .limit(limit)
            )
            return [_series_entry(s) for s in rows.scalars().all()]

        limit = settings.CREATORS_LIMIT if limit is None else limit
        stmt, total_views = _creators_query()
        rows = await db.execute(
            stmt.order_by(User.followers_count.desc(), total_views.desc(), User.id.asc()).limit(limit)
        )
        return [_creator_entry(u, views) for u, views in rows.all()]
    except SQLAlchemyError:
        logger.exception("trending %s ranking failed; returning empty list", kind.value)
        return []


async def rising(
    db: AsyncSession,
    kind: EntityKind,
    window_hint: Optional[str] = None,
    limit: Optional[int] = None,
    *,
    now: Optional[datetime] = None,
) -> list[RankedEntry]:
    normalize_window_hint(window_hint)
    kind = EntityKind(kind)
    limit = settings.RISING_LIMIT if limit is None else limit
    if limit <= 0:
        return []
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=settings.RISING_WINDOW_DAYS)
    try:
        if kind == EntityKind.series:
            rows = await db.execute(
                select(Series)
                .where(Series.created_at >= cutoff, Series.view_count > settings.RISING_MIN_VIEWS)
                .order_by(Series.view_count.desc(), Series.created_at.desc(), Series.id.desc())
                .limit(limit)
            )
            return [_series_entry(s) for s in rows.scalars().all()]

        stmt, total_views = _creators_query()
        rows = await db.execute(
            stmt.where(User.created_at >= cutoff, User.followers_count > settings.RISING_MIN_FOLLOWERS)
            .order_by(User.followers_count.desc(), User.created_at.desc(), User.id.desc())
            .limit(limit)
        )
        return [_creator_entry(u, views) for u, views in rows.all()]
    except SQLAlchemyError:
        logger.exception("rising %s ranking failed; returning empty list", kind.value)
        return []


async def get_trending_series(db: AsyncSession, limit: Optional[int] = None, window_hint: Optional[str] = None):
    return await trending(db, EntityKind.series, window_hint, limit)


async def get_rising_series(db: AsyncSession, limit: Optional[int] = None, window_hint: Optional[str] = None):
    return await rising(db, EntityKind.series, window_hint, limit)


async def get_trending_creators(db: AsyncSession, limit: Optional[int] = None, window_hint: Optional[str] = None):
    return await trending(db, EntityKind.creator, window_hint, limit)


async def get_rising_creators(db: AsyncSession, limit: Optional[int] = None, window_hint: Optional[str] = None):
    return await rising(db, EntityKind.creator, window_hint, limit)

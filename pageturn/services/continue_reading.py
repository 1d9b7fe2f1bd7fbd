# pageturn/services/continue_reading.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.models import Chapter, ReadingActivity, Series
from pageturn.settings.config import settings


@dataclass
class ContinueEntry:
    series_id: int
    chapter_id: int
    progress: float
    last_touched_at: datetime
    series_title: Optional[str] = None
    cover_image_url: Optional[str] = None
    chapter_title: Optional[str] = None
    chapter_number: Optional[int] = None


def latest_per_series(records, limit: int) -> list:
    """Keep the first (most recent) record per series_id; records must be newest first."""
    seen: dict[int, object] = {}
    for rec in records:
        if rec.series_id not in seen:
            seen[rec.series_id] = rec
            if len(seen) >= limit:
                break
    return list(seen.values())


async def continue_reading(db: AsyncSession, user_id: int, limit: Optional[int] = None) -> list[ContinueEntry]:
    """
    Most recently touched chapter per series, newest first, at most `limit` series.

    Works over the append-only activity log, so it ignores completion: a
    finished chapter is still the "latest" one until the user opens another.
    """
    limit = settings.CONTINUE_READING_LIMIT if limit is None else limit
    if limit <= 0:
        return []
    window = limit * max(1, settings.CONTINUE_READING_OVERFETCH)

    recent = (
        await db.execute(
            select(ReadingActivity)
            .where(ReadingActivity.user_id == user_id)
            .order_by(ReadingActivity.created_at.desc(), ReadingActivity.id.desc())
            .limit(window)
        )
    ).scalars().all()
    picked = latest_per_series(recent, limit)
    if not picked:
        return []

    series = {
        s.id: s for s in (
            await db.execute(select(Series).where(Series.id.in_({r.series_id for r in picked})))
        ).scalars()
    }
    chapters = {
        c.id: c for c in (
            await db.execute(select(Chapter).where(Chapter.id.in_({r.chapter_id for r in picked})))
        ).scalars()
    }

    out: list[ContinueEntry] = []
    for rec in picked:
        s = series.get(rec.series_id)
        c = chapters.get(rec.chapter_id)
        out.append(ContinueEntry(
            series_id=rec.series_id,
            chapter_id=rec.chapter_id,
            progress=float(rec.progress or 0),
            last_touched_at=rec.created_at,
            series_title=s.title if s else None,
            cover_image_url=s.cover_image_url if s else None,
            chapter_title=c.title if c else None,
            chapter_number=c.chapter_number if c else None,
        ))
    return out

# pageturn/services/counters.py
"""
Engagement counters.

All counter mutation goes through here as a single UPDATE ... SET col = col + n
statement; nothing reads a counter, adds to it in Python and writes it back.
Decrements are conditional on the result staying >= 0; a decrement that would
go negative is clamped to zero and logged instead of persisted.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.models import Chapter, ReadingProfile, Series, User

logger = logging.getLogger(__name__)

# entity kind -> (model, counter columns it owns)
COUNTERS = {
    "chapter": (Chapter, {"view_count", "like_count"}),
    "series": (Series, {"view_count", "like_count", "bookmark_count", "follower_count",
                        "rating_sum", "rating_count", "chapter_count"}),
    "user": (User, {"followers_count"}),
    "profile": (ReadingProfile, {"chapters_read"}),
}


def _resolve(kind: str, column: str):
    try:
        model, columns = COUNTERS[kind]
    except KeyError:
        raise ValueError(f"unknown counter entity {kind!r}") from None
    if column not in columns:
        raise ValueError(f"{kind} has no counter {column!r}")
    pk = model.__mapper__.primary_key[0]
    return model, pk, getattr(model, column)


async def increment(db: AsyncSession, kind: str, entity_id: int, column: str, by: int = 1) -> bool:
    """Atomically add `by` (>= 0). Returns False if the row does not exist."""
    if by < 0:
        return await decrement(db, kind, entity_id, column, -by)
    model, pk, col = _resolve(kind, column)
    res = await db.execute(update(model).where(pk == entity_id).values({column: col + by}))
    return bool(res.rowcount)


async def decrement(db: AsyncSession, kind: str, entity_id: int, column: str, by: int = 1) -> bool:
    """Atomically subtract `by`, never going below zero. Returns False if the row does not exist."""
    model, pk, col = _resolve(kind, column)
    res = await db.execute(
        update(model).where(pk == entity_id, col - by >= 0).values({column: col - by})
    )
    if res.rowcount:
        return True

    res = await db.execute(update(model).where(pk == entity_id, col < by).values({column: 0}))
    if res.rowcount:
        logger.warning(
            "InvariantViolation: %s %s.%s would drop below zero (-%s); clamped to 0",
            kind, entity_id, column, by,
        )
        return True
    return False


async def read(db: AsyncSession, kind: str, entity_id: int, column: str) -> int:
    _model, pk, col = _resolve(kind, column)
    value = await db.scalar(select(col).where(pk == entity_id))
    return int(value or 0)

# pageturn/services/guard.py
"""
Idempotency guard.

Contract (any backing store):

- ``should_record(actor_id, target_id, ActionKind.view)``: record=True only the
  first time an authenticated actor views a target. Anonymous actors
  (``actor_id is None``) always get record=True. The view mark is written by
  the same call, so the caller only has to apply the counter delta.
- ``should_record(actor_id, target_id, ActionKind.like)``: toggle. If a like
  mark exists it is removed (delta -1), otherwise it is created (delta +1).
  The mark write and the decision are one operation.
- ``should_record(actor_id, target_id, ActionKind.completion, series_id=...)``:
  record=True only for the first completion mark of (actor, chapter). Later
  completions of the same pair return record=False.

A duplicate insert rejected by the store is "already recorded", never an
error. A key-value implementation would do the same with compare-and-swap on
the mark key: the only requirement is that exactly one concurrent claimant
observes record=True.
"""
from __future__ import annotations

import abc
import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.models import ChapterCompletion, ChapterLike, ChapterView

logger = logging.getLogger(__name__)


class ActionKind(str, enum.Enum):
    view = "view"
    like = "like"
    completion = "completion"


@dataclass(frozen=True)
class GuardDecision:
    record: bool
    # counter delta the caller must apply: +1, -1 or 0
    delta: int = 0
    # like state after the call; None for other kinds
    active: Optional[bool] = None


class IdempotencyGuard(abc.ABC):
    @abc.abstractmethod
    async def should_record(
        self, actor_id: Optional[int], target_id: int, kind: ActionKind, **context: Any
    ) -> GuardDecision:
        ...

    @abc.abstractmethod
    async def exists(self, actor_id: int, target_id: int, kind: ActionKind) -> bool:
        ...


async def insert_ignore(db: AsyncSession, model, values: dict) -> bool:
    """INSERT that reports False instead of raising when a unique key already exists."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(model).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite_insert(model).values(**values).on_conflict_do_nothing()
    else:
        try:
            async with db.begin_nested():
                db.add(model(**values))
        except IntegrityError:
            return False
        return True
    res = await db.execute(stmt)
    return res.rowcount == 1


_MARKS = {
    ActionKind.view: (ChapterView, ChapterView.user_id, ChapterView.chapter_id),
    ActionKind.like: (ChapterLike, ChapterLike.user_id, ChapterLike.chapter_id),
    ActionKind.completion: (ChapterCompletion, ChapterCompletion.user_id, ChapterCompletion.chapter_id),
}


class SqlIdempotencyGuard(IdempotencyGuard):
    """Guard backed by unique constraints on the mark tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, actor_id: int, target_id: int, kind: ActionKind) -> bool:
        model, actor_col, target_col = _MARKS[kind]
        found = await self.db.scalar(
            select(model.id).where(actor_col == actor_id, target_col == target_id).limit(1)
        )
        return found is not None

    async def should_record(
        self, actor_id: Optional[int], target_id: int, kind: ActionKind, **context: Any
    ) -> GuardDecision:
        if kind == ActionKind.view:
            return await self._view(actor_id, target_id)
        if actor_id is None:
            raise ValueError(f"{kind.value} requires an actor")
        if kind == ActionKind.like:
            return await self._toggle_like(actor_id, target_id)
        if kind == ActionKind.completion:
            return await self._completion(actor_id, target_id, context["series_id"])
        raise ValueError(f"unsupported action {kind!r}")

    async def _view(self, actor_id: Optional[int], chapter_id: int) -> GuardDecision:
        if actor_id is None:
            # anonymous views are never deduplicated
            self.db.add(ChapterView(user_id=None, chapter_id=chapter_id))
            await self.db.flush()
            return GuardDecision(record=True, delta=1)
        fresh = await insert_ignore(self.db, ChapterView, {"user_id": actor_id, "chapter_id": chapter_id})
        if not fresh:
            logger.debug("view by user %s on chapter %s already counted", actor_id, chapter_id)
        return GuardDecision(record=fresh, delta=1 if fresh else 0)

    async def _toggle_like(self, actor_id: int, chapter_id: int) -> GuardDecision:
        if await self.exists(actor_id, chapter_id, ActionKind.like):
            res = await self.db.execute(
                delete(ChapterLike).where(
                    ChapterLike.user_id == actor_id, ChapterLike.chapter_id == chapter_id
                )
            )
            # a concurrent unlike may have removed it first
            removed = bool(res.rowcount)
            return GuardDecision(record=removed, delta=-1 if removed else 0, active=False)

        added = await insert_ignore(self.db, ChapterLike, {"user_id": actor_id, "chapter_id": chapter_id})
        if not added:
            logger.debug("like by user %s on chapter %s raced; already liked", actor_id, chapter_id)
        return GuardDecision(record=added, delta=1 if added else 0, active=True)

    async def _completion(self, actor_id: int, chapter_id: int, series_id: int) -> GuardDecision:
        fresh = await insert_ignore(
            self.db,
            ChapterCompletion,
            {"user_id": actor_id, "chapter_id": chapter_id, "series_id": series_id},
        )
        if not fresh:
            logger.debug("chapter %s already completed by user %s", chapter_id, actor_id)
        return GuardDecision(record=fresh, delta=1 if fresh else 0)

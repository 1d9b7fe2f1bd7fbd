from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.database import get_db
from pageturn.errors import store_errors
from pageturn.schemas import (
    ActivityRead,
    ContinueReadingRead,
    ProfileStatsRead,
    ProgressResultRead,
    ProgressUpdate,
    SeriesProgressRead,
)
from pageturn.services import ledger
from pageturn.services.continue_reading import continue_reading
from pageturn.utils import require_authenticated_user


router = APIRouter(prefix="/api", tags=["reading"])


@router.put("/reading-progress", response_model=ProgressResultRead)
async def put_reading_progress(
    payload: ProgressUpdate,
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    result = await ledger.record_progress(db, user.id, payload.series_id, payload.chapter_id, payload.progress)
    async with store_errors("record progress"):
        await db.commit()
    return result


@router.get("/reading-progress/{series_id}", response_model=SeriesProgressRead)
async def get_reading_progress(
    series_id: int,
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    return await ledger.get_series_progress(db, user.id, series_id)


@router.get("/user/continue-reading", response_model=list[ContinueReadingRead])
async def get_continue_reading(
    limit: Optional[int] = Query(None, ge=1, le=50),
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    return await continue_reading(db, user.id, limit)


@router.get("/user/stats", response_model=ProfileStatsRead)
async def get_profile_stats(
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    stats = await ledger.get_profile_stats(db, user.id)
    # persists a streak reconciliation, if one happened
    async with store_errors("reconcile streak"):
        await db.commit()
    return stats


@router.get("/user/history", response_model=list[ActivityRead])
async def get_reading_history(
    limit: int = Query(50, ge=1, le=200),
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    return await ledger.get_reading_history(db, user.id, limit)


__all__ = ["router"]

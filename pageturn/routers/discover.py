from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.database import get_db
from pageturn.schemas import RankedRead
from pageturn.services import ranking


router = APIRouter(prefix="/api", tags=["discover"])

# `timeframe` is advisory: validated, but rankings always use all-time counters


@router.get("/series/trending", response_model=list[RankedRead])
async def trending_series(
    timeframe: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await ranking.get_trending_series(db, limit, timeframe)


@router.get("/series/rising", response_model=list[RankedRead])
async def rising_series(
    timeframe: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await ranking.get_rising_series(db, limit, timeframe)


@router.get("/creators/trending", response_model=list[RankedRead])
async def trending_creators(
    timeframe: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await ranking.get_trending_creators(db, limit, timeframe)


@router.get("/creators/rising", response_model=list[RankedRead])
async def rising_creators(
    timeframe: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await ranking.get_rising_creators(db, limit, timeframe)


__all__ = ["router"]

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.database import get_db
from pageturn.schemas import CreatorAnalyticsRead, TransactionRead
from pageturn.services.analytics import creator_analytics
from pageturn.services.coins import get_user_transactions
from pageturn.utils import require_authenticated_user, require_creator


router = APIRouter(prefix="/api", tags=["creator"])


@router.get("/creator/analytics", response_model=CreatorAnalyticsRead)
async def my_analytics(user=Depends(require_creator), db: AsyncSession = Depends(get_db)):
    return await creator_analytics(db, user.id)


@router.get("/creators/{creator_id}/analytics", response_model=CreatorAnalyticsRead)
async def analytics_for(creator_id: int, db: AsyncSession = Depends(get_db)):
    return await creator_analytics(db, creator_id)


@router.get("/user/transactions", response_model=list[TransactionRead])
async def my_transactions(user=Depends(require_authenticated_user), db: AsyncSession = Depends(get_db)):
    return await get_user_transactions(db, user.id)


__all__ = ["router"]

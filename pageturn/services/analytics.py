# pageturn/services/analytics.py
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.errors import NotFound
from pageturn.models import CoinTransaction, Series, SeriesStatus, TransactionKind, User

logger = logging.getLogger(__name__)


def _empty() -> dict:
    return {"total_views": 0, "followers": 0, "coins_earned": 0, "active_series": 0}


async def creator_analytics(db: AsyncSession, creator_id: int) -> dict:
    """
    Read-only rollup of a creator's own counters.

    total_views    sum of view_count over the creator's series
    followers      the creator's followers_count
    coins_earned   sum of positive "unlock" transactions credited to the creator
    active_series  series with status "ongoing"

    Store failures degrade to a zeroed summary; a missing creator is NotFound.
    """
    try:
        creator = await db.get(User, creator_id)
        if not creator:
            raise NotFound(f"Creator {creator_id} not found")

        owned = (
            await db.execute(
                select(Series.view_count, Series.status).where(Series.author_id == creator_id)
            )
        ).all()
        coins = await db.scalar(
            select(func.coalesce(func.sum(CoinTransaction.amount), 0)).where(
                CoinTransaction.user_id == creator_id,
                CoinTransaction.kind == TransactionKind.unlock,
                CoinTransaction.amount > 0,
            )
        )
    except SQLAlchemyError:
        logger.exception("creator analytics for %s failed; returning zeroed summary", creator_id)
        return _empty()

    return {
        "total_views": sum(views or 0 for views, _status in owned),
        "followers": creator.followers_count or 0,
        "coins_earned": int(coins or 0),
        "active_series": sum(1 for _views, status in owned if status == SeriesStatus.ongoing),
    }

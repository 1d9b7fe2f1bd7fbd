# pageturn/services/coins.py
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.errors import InvalidAction, NotFound, store_errors
from pageturn.models import Chapter, CoinTransaction, TransactionKind, User


async def record_transaction(
    db: AsyncSession,
    user_id: int,
    amount: int,
    kind,
    chapter_id: Optional[int] = None,
    description: Optional[str] = None,
) -> CoinTransaction:
    """Append a coin transaction. Rows are never updated; balances are not touched here."""
    try:
        kind = TransactionKind(kind)
    except ValueError:
        raise InvalidAction(f"unknown transaction kind {kind!r}") from None
    async with store_errors("record transaction"):
        if not await db.get(User, user_id):
            raise NotFound(f"User {user_id} not found")
        if chapter_id is not None and not await db.get(Chapter, chapter_id):
            raise NotFound(f"Chapter {chapter_id} not found")
        tx = CoinTransaction(
            user_id=user_id, amount=int(amount), kind=kind, chapter_id=chapter_id, description=description
        )
        db.add(tx)
        await db.flush()
        return tx


async def get_user_transactions(db: AsyncSession, user_id: int) -> list[CoinTransaction]:
    rows = await db.execute(
        select(CoinTransaction)
        .where(CoinTransaction.user_id == user_id)
        .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
    )
    return list(rows.scalars().all())

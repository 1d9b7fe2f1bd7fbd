"""Error taxonomy for the reading ledger and its read-side views.

Duplicate events are not errors here: the idempotency guard reports them
as "not recorded" and callers return the same success shape as the first
writer. Negative counters are clamped and logged by the counter store.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    status_code: int = 500
    retryable: bool = False

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class NotFound(LedgerError):
    status_code = 404


class InvalidAction(LedgerError):
    status_code = 400


class StoreUnavailable(LedgerError):
    status_code = 503
    retryable = True


@asynccontextmanager
async def store_errors(action: str) -> AsyncIterator[None]:
    """Translate driver/ORM failures on write paths into StoreUnavailable.

    IntegrityError is left alone: on mark tables it means "already recorded"
    and the guard handles it.
    """
    try:
        yield
    except (LedgerError, IntegrityError):
        raise
    except SQLAlchemyError as exc:
        logger.warning("%s failed against the store: %s", action, exc)
        raise StoreUnavailable(f"{action} failed; try again") from exc


__all__ = ["LedgerError", "NotFound", "InvalidAction", "StoreUnavailable", "store_errors"]

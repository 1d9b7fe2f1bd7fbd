from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pageturn.database import get_db
from pageturn.errors import store_errors
from pageturn.schemas import (
    BookmarkRequest,
    ChangedRead,
    FollowRequest,
    LikeRead,
    SeriesRead,
    UserSummary,
    ViewRead,
)
from pageturn.services import engagement
from pageturn.utils import get_current_user, require_authenticated_user


router = APIRouter(prefix="/api", tags=["engagement"])


async def _commit(db: AsyncSession, action: str):
    async with store_errors(action):
        await db.commit()


@router.post("/chapters/{chapter_id}/like", response_model=LikeRead)
async def like_chapter(
    chapter_id: int,
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    result = await engagement.toggle_like(db, user.id, chapter_id)
    await _commit(db, "toggle like")
    return result


@router.get("/chapters/{chapter_id}/like", response_model=LikeRead)
async def chapter_like_status(
    chapter_id: int,
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    return await engagement.like_state(db, user.id, chapter_id)


@router.post("/chapters/{chapter_id}/view", response_model=ViewRead)
async def view_chapter(
    chapter_id: int,
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    counted = await engagement.record_view(db, user.id if user else None, chapter_id)
    await _commit(db, "record view")
    return {"counted": counted}


@router.post("/follow", response_model=ChangedRead)
async def follow(
    payload: FollowRequest,
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    changed = await engagement.follow(db, user.id, payload.target_id, payload.target_type)
    await _commit(db, "follow")
    return {"changed": changed}


@router.delete("/follow", response_model=ChangedRead)
async def unfollow(
    payload: FollowRequest,
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    changed = await engagement.unfollow(db, user.id, payload.target_id, payload.target_type)
    await _commit(db, "unfollow")
    return {"changed": changed}


@router.get("/user/followed-series", response_model=list[SeriesRead])
async def followed_series(user=Depends(require_authenticated_user), db: AsyncSession = Depends(get_db)):
    return await engagement.get_followed_series(db, user.id)


@router.get("/users/{user_id}/followers", response_model=list[UserSummary])
async def followers(user_id: int, db: AsyncSession = Depends(get_db)):
    return await engagement.get_followers(db, user_id)


@router.get("/users/{user_id}/following", response_model=list[UserSummary])
async def following(user_id: int, db: AsyncSession = Depends(get_db)):
    return await engagement.get_following(db, user_id)


@router.post("/bookmarks", response_model=ChangedRead)
async def add_bookmark(
    payload: BookmarkRequest,
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    changed = await engagement.bookmark(db, user.id, payload.series_id)
    await _commit(db, "bookmark")
    return {"changed": changed}


@router.delete("/bookmarks/{series_id}", response_model=ChangedRead)
async def remove_bookmark(
    series_id: int,
    user=Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    changed = await engagement.unbookmark(db, user.id, series_id)
    await _commit(db, "unbookmark")
    return {"changed": changed}


@router.get("/user/bookmarks", response_model=list[SeriesRead])
async def bookmarks(user=Depends(require_authenticated_user), db: AsyncSession = Depends(get_db)):
    return await engagement.get_bookmarked_series(db, user.id)


__all__ = ["router"]

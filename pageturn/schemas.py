from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from fastapi_users import schemas

from .models import SeriesStatus, TransactionKind

# =========================
# USER SCHEMAS
# =========================
class UserRead(schemas.BaseUser[int]):
    username: str
    is_creator: bool = False
    creator_display_name: Optional[str] = None
    followers_count: int = 0

class UserCreate(schemas.BaseUserCreate):
    username: str

class UserUpdate(schemas.BaseUserUpdate):
    username: Optional[str] = None
    creator_display_name: Optional[str] = None

class UserSummary(BaseModel):
    id: int
    username: str
    creator_display_name: Optional[str] = None
    followers_count: int = 0

    class Config:
        from_attributes = True


# =========================
# READING PROGRESS
# =========================
class ProgressUpdate(BaseModel):
    series_id: int = Field(alias="seriesId")
    chapter_id: int = Field(alias="chapterId")
    progress: float

    class Config:
        populate_by_name = True

class ProgressResultRead(BaseModel):
    progress: float
    completed: bool
    fresh: bool

    class Config:
        from_attributes = True

class SeriesProgressRead(BaseModel):
    series_id: int
    read_chapters: int
    total_chapters: int
    progress: int
    last_read_chapter_id: Optional[int] = None

class ActivityRead(BaseModel):
    id: int
    series_id: int
    chapter_id: int
    progress: float
    created_at: datetime

    class Config:
        from_attributes = True

class ContinueReadingRead(BaseModel):
    series_id: int
    chapter_id: int
    progress: float
    last_touched_at: datetime
    series_title: Optional[str] = None
    cover_image_url: Optional[str] = None
    chapter_title: Optional[str] = None
    chapter_number: Optional[int] = None

    class Config:
        from_attributes = True

class ProfileStatsRead(BaseModel):
    chapters_read: int
    reading_streak: int
    chapters_read_this_week: int
    total_likes_given: int
    series_followed: int
    series_bookmarked: int
    followers_count: int
    following_count: int
    favorite_genre: Optional[str] = None
    last_read_at: Optional[datetime] = None
    last_read_chapter_id: Optional[int] = None
    last_read_series_id: Optional[int] = None


# =========================
# ENGAGEMENT
# =========================
class LikeRead(BaseModel):
    liked: bool
    like_count: int

class ViewRead(BaseModel):
    counted: bool

class FollowRequest(BaseModel):
    target_id: int = Field(alias="targetId")
    target_type: str = Field(alias="targetType")

    class Config:
        populate_by_name = True

class BookmarkRequest(BaseModel):
    series_id: int = Field(alias="seriesId")

    class Config:
        populate_by_name = True

class ChangedRead(BaseModel):
    changed: bool


# =========================
# SERIES / RANKINGS
# =========================
class SeriesRead(BaseModel):
    id: int
    title: str
    cover_image_url: Optional[str] = None
    author_id: int
    status: SeriesStatus
    genres: Optional[List[str]] = None
    view_count: int = 0
    like_count: int = 0
    bookmark_count: int = 0
    follower_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True

class RankedRead(BaseModel):
    entity_id: int
    score: int
    tie_break: int
    created_at: Optional[datetime] = None
    title: Optional[str] = None
    author_id: Optional[int] = None

    class Config:
        from_attributes = True


# =========================
# CREATOR ANALYTICS
# =========================
class CreatorAnalyticsRead(BaseModel):
    total_views: int = 0
    followers: int = 0
    coins_earned: int = 0
    active_series: int = 0

class TransactionRead(BaseModel):
    id: int
    kind: TransactionKind
    amount: int
    chapter_id: Optional[int] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

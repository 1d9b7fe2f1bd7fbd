from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Text, DateTime, Float,
    UniqueConstraint, Index, JSON, func
)
from sqlalchemy.orm import relationship
from sqlalchemy import Enum as SAEnum
from datetime import datetime, timezone
import enum

from .database import Base


def _now_utc() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class SeriesType(str, enum.Enum):
    webtoon = "webtoon"
    manga = "manga"
    novel = "novel"


class SeriesStatus(str, enum.Enum):
    ongoing = "ongoing"
    completed = "completed"
    hiatus = "hiatus"


class ChapterStatus(str, enum.Enum):
    free = "free"
    premium = "premium"
    scheduled = "scheduled"


class FollowTarget(str, enum.Enum):
    user = "user"
    series = "series"


class TransactionKind(str, enum.Enum):
    purchase = "purchase"
    unlock = "unlock"
    reward = "reward"


# ---------------------------
# USER MODEL
# ---------------------------
class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_superuser = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    is_creator = Column(Boolean, default=False, nullable=False, index=True)
    creator_display_name = Column(String(120), nullable=True)
    coin_balance = Column(Integer, default=0, nullable=False)

    # maintained by follow/unfollow
    followers_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_now_utc, onupdate=_now_utc)

    series = relationship("Series", back_populates="author")
    reading_profile = relationship(
        "ReadingProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_user_creator_followers", "is_creator", "followers_count"),
    )


# ---------------------------
# CATALOG
# ---------------------------
class Series(Base):
    __tablename__ = "series"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    cover_image_url = Column(Text, nullable=True)
    type = Column(SAEnum(SeriesType), nullable=False, default=SeriesType.novel)
    status = Column(SAEnum(SeriesStatus), nullable=False, default=SeriesStatus.ongoing)
    author_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    genres = Column(JSON, nullable=True)  # ["fantasy", "romance", ...]

    # engagement counters
    view_count = Column(Integer, default=0, nullable=False)
    like_count = Column(Integer, default=0, nullable=False)
    bookmark_count = Column(Integer, default=0, nullable=False)
    follower_count = Column(Integer, default=0, nullable=False)
    rating_sum = Column(Integer, default=0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    chapter_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_now_utc, onupdate=_now_utc)

    author = relationship("User", back_populates="series")
    chapters = relationship(
        "Chapter",
        back_populates="series",
        order_by="Chapter.chapter_number.asc()",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_series_views_created", "view_count", "created_at"),
    )

    def __repr__(self):
        return f"<Series {self.id} {self.title!r} views={self.view_count}>"


class Chapter(Base):
    __tablename__ = "chapter"

    id = Column(Integer, primary_key=True, index=True)
    series_id = Column(Integer, ForeignKey("series.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    chapter_number = Column(Integer, nullable=False)
    status = Column(SAEnum(ChapterStatus), nullable=False, default=ChapterStatus.free)
    coin_price = Column(Integer, default=0, nullable=False)

    view_count = Column(Integer, default=0, nullable=False)
    like_count = Column(Integer, default=0, nullable=False)

    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    series = relationship("Series", back_populates="chapters")


# ---------------------------
# READING LEDGER
# ---------------------------
class ReadingActivity(Base):
    """Append-only: one row per progress touch."""
    __tablename__ = "reading_activity"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    series_id = Column(Integer, ForeignKey("series.id", ondelete="CASCADE"), nullable=False)
    chapter_id = Column(Integer, ForeignKey("chapter.id", ondelete="CASCADE"), nullable=False)
    progress = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        Index("ix_reading_activity_user_created", "user_id", "created_at"),
    )


class ReadingProgress(Base):
    """Latest percentage per (user, series, chapter); display only."""
    __tablename__ = "reading_progress"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    series_id = Column(Integer, ForeignKey("series.id", ondelete="CASCADE"), nullable=False)
    chapter_id = Column(Integer, ForeignKey("chapter.id", ondelete="CASCADE"), nullable=False)
    progress = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "series_id", "chapter_id", name="uq_progress_user_series_chapter"),
    )


class ChapterCompletion(Base):
    """First 100% for a (user, chapter). The unique key is the counting gate."""
    __tablename__ = "chapter_completion"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    chapter_id = Column(Integer, ForeignKey("chapter.id", ondelete="CASCADE"), nullable=False)
    series_id = Column(Integer, ForeignKey("series.id", ondelete="CASCADE"), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "chapter_id", name="uq_completion_user_chapter"),
        Index("ix_completion_user_completed", "user_id", "completed_at"),
    )


class ReadingProfile(Base):
    """
    Denormalized per-user reading summary.

    `reading_dates` (ISO dates, most recent first) is the source for the
    streak; `reading_streak` is a cache of compute_streak(reading_dates).
    """
    __tablename__ = "reading_profile"

    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), primary_key=True)
    chapters_read = Column(Integer, default=0, nullable=False)
    reading_streak = Column(Integer, default=0, nullable=False)
    reading_dates = Column(JSON, nullable=True)
    last_read_at = Column(DateTime(timezone=True), nullable=True)
    last_read_chapter_id = Column(Integer, ForeignKey("chapter.id", ondelete="SET NULL"), nullable=True)
    last_read_series_id = Column(Integer, ForeignKey("series.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_now_utc, onupdate=_now_utc)

    user = relationship("User", back_populates="reading_profile")

    def __repr__(self) -> str:
        return (
            f"<ReadingProfile user_id={self.user_id} read={self.chapters_read} "
            f"streak={self.reading_streak} last={self.last_read_at}>"
        )


# ---------------------------
# ENGAGEMENT MARKS
# ---------------------------
class ChapterLike(Base):
    __tablename__ = "chapter_like"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    chapter_id = Column(Integer, ForeignKey("chapter.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "chapter_id", name="uq_like_user_chapter"),
    )


class ChapterView(Base):
    """Append-once per authenticated viewer; anonymous rows (user_id NULL) never collide."""
    __tablename__ = "chapter_view"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=True)
    chapter_id = Column(Integer, ForeignKey("chapter.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "chapter_id", name="uq_view_user_chapter"),
    )


class Follow(Base):
    __tablename__ = "follow"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    target_id = Column(Integer, nullable=False)  # user id or series id
    target_type = Column(SAEnum(FollowTarget), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "target_id", "target_type", name="uq_follow_user_target"),
        Index("ix_follow_target", "target_type", "target_id"),
    )


class Bookmark(Base):
    __tablename__ = "bookmark"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    series_id = Column(Integer, ForeignKey("series.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "series_id", name="uq_bookmark_user_series"),
    )


# ---------------------------
# COIN LEDGER (append-only)
# ---------------------------
class CoinTransaction(Base):
    __tablename__ = "coin_transaction"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(SAEnum(TransactionKind), nullable=False)
    amount = Column(Integer, nullable=False)
    chapter_id = Column(Integer, ForeignKey("chapter.id", ondelete="SET NULL"), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=_now_utc)

"""ORM models for the karma ledger schema.

The schema itself is created by the Alembic migrations in ``alembic/versions``;
``Base.metadata`` mirrors it so tests can ``create_all`` against SQLite.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from karmaledger.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table. Credentials are owned by the auth service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    karma_events: Mapped[list[KarmaEvent]] = relationship("KarmaEvent", back_populates="user")


# ---------------------------------------------------------------------------
# Karma events
# ---------------------------------------------------------------------------


class KarmaEvent(Base):
    """One self-reported act.

    ``intensity`` and ``feedback`` stay NULL until the feedback job scores the
    event. ``feedback_generated`` only ever flips false -> true.
    """

    __tablename__ = "karma_events"
    __table_args__ = (
        CheckConstraint("intensity IS NULL OR (intensity >= -1 AND intensity <= 10)", name="karma_events_intensity_range"),
        Index("idx_karma_events_user_occurred", "user_id", "occurred_at"),
        Index("idx_karma_events_occurred", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action: Mapped[str] = mapped_column(String(500), nullable=False)
    reflection: Mapped[str | None] = mapped_column(Text, nullable=True)
    intensity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    feedback_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    feedback_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    feedback_failed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="karma_events")

    @property
    def feedback_status(self) -> str:
        """'ready' once scored, 'failed' after the last retry, otherwise 'pending'."""
        if self.feedback_generated:
            return "ready"
        if self.feedback_failed:
            return "failed"
        return "pending"


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


class Suggestion(Base):
    """AI suggestion. Each generation run replaces the user's whole set."""

    __tablename__ = "suggestions"
    __table_args__ = (Index("idx_suggestions_user", "user_id"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    suggestion_text: Mapped[str] = mapped_column(Text, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class Badge(Base):
    """Badge catalog, seeded on startup."""

    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserBadge(Base):
    """Badges earned by users. UNIQUE(user_id, badge_id) makes awarding idempotent."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),
        Index("idx_user_badges_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[int] = mapped_column(Integer, ForeignKey("badges.id"), nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    badge: Mapped[Badge] = relationship("Badge", lazy="joined")

"""
SQLAlchemy models for the Food Tracker backend

Tables:
- users: identity-provider accounts with their push device token and digest cadence
- products: perishable items owned by a user (read-only to the scheduler)
- notification_history: one row per (user, reminder key) that has been sent

Column types are kept portable so the same models run on PostgreSQL
(asyncpg) in production and SQLite (aiosqlite) in development and tests.
"""

import enum
from datetime import datetime
from typing import Optional, List

from sqlalchemy import (
    Float, String, Text, DateTime, JSON, ForeignKey, Index, func
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ============================================================================
# BASE & MIXINS
# ============================================================================

class Base(DeclarativeBase):
    """Base class for all models"""
    type_annotation_map = {
        dict: JSON,
        list: JSON,
    }


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


# ============================================================================
# ENUMS
# ============================================================================

class NotificationType(str, enum.Enum):
    """Push payload ``type`` values understood by the mobile client"""
    EXPIRY_WARNING = "expiry_warning"
    DAILY_EXPIRY = "daily_expiry"
    WEEKLY_SUMMARY = "weekly_summary"


# ============================================================================
# USERS
# ============================================================================

class User(Base, TimestampMixin):
    """User account mirrored from the identity provider"""
    __tablename__ = "users"

    # Identity-provider uid
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Push delivery
    device_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Notification state (written by the scheduler only)
    last_weekly_digest_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    products: Mapped[List["Product"]] = relationship(
        "Product",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    notification_history: Mapped[List["NotificationHistoryEntry"]] = relationship(
        "NotificationHistoryEntry",
        back_populates="user",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


# ============================================================================
# PRODUCTS
# ============================================================================

class Product(Base, TimestampMixin):
    """Tracked food product"""
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)

    # Raw value as written by the client; parsed leniently by the scheduler
    expiry_date: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Label analysis and rating output (not used by the scheduler)
    ingredients: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    health_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    health_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="products")

    __table_args__ = (
        Index("idx_products_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name}, expiry_date={self.expiry_date})>"


# ============================================================================
# NOTIFICATION HISTORY
# ============================================================================

class NotificationHistoryEntry(Base):
    """
    Last time a reminder key fired for a user.

    Keyed by (user_id, reminder_key) so every marker is upserted on its own;
    concurrent passes cannot overwrite each other's markers.
    """
    __tablename__ = "notification_history"

    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )
    reminder_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="notification_history")

    def __repr__(self) -> str:
        return f"<NotificationHistoryEntry(user_id={self.user_id}, key={self.reminder_key}, sent_at={self.sent_at})>"

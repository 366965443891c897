from typing import Optional
from datetime import datetime, date
from sqlalchemy import (
    String,
    Boolean,
    Integer,
    ForeignKey,
    Enum,
    Index,
    UniqueConstraint,
    DateTime,
    Date,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import enum

from reminder_service.utils.datetime_utils import naive_utc_now


class Base(DeclarativeBase):
    pass


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Enums
class DevicePlatform(enum.Enum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"
    UNKNOWN = "unknown"


class NotificationType(enum.Enum):
    INACTIVITY_REMINDER = "inactivity-reminder"
    MISSING_MOOD = "missing-mood"
    PENDING_SURVEY = "pending-survey"
    UNREAD_ARTICLE = "unread-article"
    GLOBAL_INACTIVITY_REMINDER = "global-inactivity-reminder"
    SUGGESTED_ACTIVITIES_READY = "suggested-activities-ready"
    CUSTOM_BROADCAST = "custom-broadcast"


REMINDER_TYPES = (
    NotificationType.INACTIVITY_REMINDER,
    NotificationType.MISSING_MOOD,
    NotificationType.PENDING_SURVEY,
    NotificationType.UNREAD_ARTICLE,
    NotificationType.GLOBAL_INACTIVITY_REMINDER,
)


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, onupdate=naive_utc_now, nullable=False
    )


# Notification models
class UserDevice(Base, AuditMixin):
    __tablename__ = "user_devices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    token: Mapped[str] = mapped_column(String(512), nullable=False)
    platform: Mapped[DevicePlatform] = mapped_column(
        Enum(
            DevicePlatform,
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        default=DevicePlatform.UNKNOWN,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "token", name="uq_user_devices_user_token"),
        Index("ix_user_devices_active_user", "is_active", "user_id"),
        Index("ix_user_devices_token", "token"),
    )


class UserNotificationTracker(Base, AuditMixin):
    __tablename__ = "user_notification_tracker"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        Enum(
            NotificationType,
            native_enum=False,
            length=64,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    last_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_notification_tracker_user_type"),
    )


# Read-only mappings of tables owned by the profile and content services.
# Only the columns needed for reminder eligibility are mapped.
class User(Base, AuditMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    roles: Mapped[str] = mapped_column(String(255), default="user", nullable=False)


class Activity(Base, AuditMixin):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )


class MoodEntry(Base, AuditMixin):
    __tablename__ = "mood_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    mood_date: Mapped[date] = mapped_column(Date, nullable=False)


class UserSurvey(Base, AuditMixin):
    __tablename__ = "user_surveys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )


class UserHiddenArticle(Base):
    __tablename__ = "user_hidden_articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    article_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )

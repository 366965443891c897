from datetime import datetime
from typing import Dict, Literal, Optional
from pydantic import Field, field_validator

from reminder_service.db.models import DevicePlatform, NotificationType
from reminder_service.schemas.camel_base_model import CamelCaseBaseModel as BaseModel


class NotificationPayload(BaseModel):
    title: str = Field(..., description="Notification title")
    body: str = Field(..., description="Notification body")
    data: Optional[Dict[str, str]] = Field(
        default=None, description="Optional key-value data payload"
    )


class NotificationProcessingStats(BaseModel):
    type: NotificationType = Field(..., description="Notification kind")
    attempted: int = Field(0, description="Users that passed eligibility")
    sent: int = Field(0, description="Users queued for delivery")
    skipped: int = Field(0, description="Users suppressed by cooldown")
    failed: int = Field(0, description="Users whose delivery could not be queued")


# Device registration surface
class RegisterDeviceRequest(BaseModel):
    token: str = Field(
        ..., min_length=10, max_length=512, description="Firebase device token"
    )
    platform: DevicePlatform = Field(
        default=DevicePlatform.UNKNOWN, description="Device platform"
    )

    @field_validator("token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Device token is too short")
        return v


class DeviceResponse(BaseModel):
    user_id: int = Field(..., description="User identifier")
    token: str = Field(..., description="Firebase device token")
    platform: DevicePlatform = Field(..., description="Device platform")
    is_active: bool = Field(..., description="Whether the token is active")
    last_used_at: Optional[datetime] = Field(
        default=None, description="Last time the token received a push"
    )


# Admin surface
class BroadcastRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=120, description="Notification title")
    body: str = Field(..., min_length=1, max_length=512, description="Notification body")
    data: Optional[Dict[str, str]] = Field(
        default=None, description="Optional key-value data payload"
    )


class BroadcastQueuedResponse(BaseModel):
    status: Literal["queued"] = "queued"
    job_id: Optional[str] = Field(default=None, description="Fan-out job identifier")


class TrackerResponse(BaseModel):
    user_id: int = Field(..., description="User identifier")
    type: NotificationType = Field(..., description="Notification kind")
    last_sent_at: Optional[datetime] = Field(
        default=None, description="Timestamp of the last successful delivery"
    )


class DeviceStatistics(BaseModel):
    total_users: int = Field(..., description="Users excluding admins")
    users_with_device_token: int = Field(
        ..., description="Users with at least one active device token"
    )
    users_without_device_token: int = Field(
        ..., description="Users without an active device token"
    )

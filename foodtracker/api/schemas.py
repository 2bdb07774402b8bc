"""
Pydantic Schemas for API Request/Response Models
Type-safe data validation and serialization.
"""

from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


# ============================================================================
# Notification Schemas
# ============================================================================

class PassReportResponse(BaseModel):
    """Summary of one scheduler pass."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    users_checked: int
    users_skipped: int
    users_failed: int
    notifications_sent: int
    notifications_failed: int


class CheckNowResponse(BaseModel):
    """Manual notification check result."""
    success: bool = True
    message: str
    timestamp: datetime
    report: PassReportResponse


class SchedulerStatusResponse(BaseModel):
    """Scheduler state."""
    is_running: bool
    cadence_description: str


class SendNotificationRequest(BaseModel):
    """Manual push notification request."""
    token: str = Field(..., min_length=1)
    title: str = "Food Tracker Notification"
    body: str = "You have a new notification"
    data: Dict[str, Any] = Field(default_factory=dict)


class SendNotificationResponse(BaseModel):
    """Manual push notification result."""
    success: bool = True
    message_id: Optional[str] = None
    sent_at: datetime


# ============================================================================
# User Schemas
# ============================================================================

class DeviceTokenUpdate(BaseModel):
    """Register a device for push notifications."""
    device_token: str = Field(..., min_length=1)


# ============================================================================
# Common Schemas
# ============================================================================

class MessageResponse(BaseModel):
    """Generic message response."""
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    message: str
    details: Optional[Any] = None
    timestamp: datetime

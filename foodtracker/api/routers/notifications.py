"""
Notifications Router
Operational endpoints for the expiry reminder scheduler and manual push sends.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from foodtracker.api.dependencies import get_delivery, get_scheduler
from foodtracker.api.schemas import (
    CheckNowResponse,
    PassReportResponse,
    SchedulerStatusResponse,
    SendNotificationRequest,
    SendNotificationResponse,
)
from foodtracker.notifications.exceptions import CollaboratorUnavailableError, StoreError
from foodtracker.notifications.scheduler import NotificationScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/check-now",
    response_model=CheckNowResponse,
    summary="Run notification check",
    description="Run one expiry notification pass over all users and wait for it to finish",
)
async def check_now(
    scheduler: NotificationScheduler = Depends(get_scheduler),
) -> CheckNowResponse:
    """Run one scheduler pass synchronously."""
    logger.info("🔔 Manual notification check triggered")

    try:
        report = await scheduler.trigger_now()
    except (CollaboratorUnavailableError, StoreError) as e:
        logger.error(f"❌ Error in notification check: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to run notification check: {e}",
        )

    return CheckNowResponse(
        message="Notification check completed",
        timestamp=datetime.utcnow(),
        report=PassReportResponse(**report.to_dict()),
    )


@router.get(
    "/status",
    response_model=SchedulerStatusResponse,
    summary="Scheduler status",
    description="Whether the automatic check is armed and how often it runs",
)
async def scheduler_status(
    scheduler: NotificationScheduler = Depends(get_scheduler),
) -> SchedulerStatusResponse:
    return SchedulerStatusResponse(**scheduler.get_status())


@router.post(
    "/send",
    response_model=SendNotificationResponse,
    summary="Send notification",
    description="Send a single push notification to a device token",
)
async def send_notification(
    request: SendNotificationRequest,
    delivery=Depends(get_delivery),
) -> SendNotificationResponse:
    """Send one push notification."""
    result = await delivery.send(
        request.token,
        request.title,
        request.body,
        {key: str(value) for key, value in request.data.items()},
    )

    if not result.success:
        logger.error(f"Notification error: {result.error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to send notification: {result.error}",
        )

    return SendNotificationResponse(
        message_id=result.message_id,
        sent_at=datetime.utcnow(),
    )

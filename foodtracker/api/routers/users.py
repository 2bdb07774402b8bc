"""
Users Router
Device registration for push notifications.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from foodtracker.api.dependencies import get_store
from foodtracker.api.schemas import DeviceTokenUpdate, MessageResponse
from foodtracker.notifications.exceptions import StoreError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put(
    "/{user_id}/device-token",
    response_model=MessageResponse,
    summary="Register device token",
    description="Save the push token the mobile client obtained for this user",
)
async def register_device_token(
    user_id: str,
    request: DeviceTokenUpdate,
    store=Depends(get_store),
) -> MessageResponse:
    """Register a device token."""
    try:
        updated = await store.register_device_token(user_id, request.device_token)
    except StoreError as e:
        logger.error(f"Failed to save device token: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save device token",
        )

    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    logger.info(f"Device token registered for user {user_id}")
    return MessageResponse(message="Device token saved")

"""
FastAPI Dependencies
Access to the collaborators built at startup and stored on ``app.state``.
"""

from fastapi import HTTPException, Request, status

from foodtracker.notifications.scheduler import NotificationScheduler


def get_scheduler(request: Request) -> NotificationScheduler:
    """
    Dependency returning the application's notification scheduler.

    Raises:
        HTTPException: If the app started without a scheduler
    """
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Notification scheduler is not initialized",
        )
    return scheduler


def get_store(request: Request):
    """
    Dependency returning the notification store.

    Raises:
        HTTPException: If the database is not configured
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database not configured",
        )
    return store


def get_delivery(request: Request):
    """
    Dependency returning the push delivery backend.

    Raises:
        HTTPException: If Firebase Admin is not initialized
    """
    delivery = getattr(request.app.state, "delivery", None)
    if delivery is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Firebase Admin not initialized",
        )
    return delivery

"""
Push delivery over Firebase Cloud Messaging.

The Firebase Admin SDK is synchronous, so each send runs in a worker
thread to keep the event loop free.
"""

import asyncio
import logging
from typing import Dict, Optional

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError

from foodtracker.notifications.exceptions import CollaboratorUnavailableError
from foodtracker.notifications.records import DeliveryResult

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "foodtracker"


def build_service_account(settings) -> Dict[str, Optional[str]]:
    """
    Build a service-account dict from settings.

    Raises:
        CollaboratorUnavailableError: If required Firebase settings are missing
    """
    missing = [
        name for name in ("FIREBASE_PROJECT_ID", "FIREBASE_PRIVATE_KEY", "FIREBASE_CLIENT_EMAIL")
        if not getattr(settings, name)
    ]
    if missing:
        raise CollaboratorUnavailableError(
            f"Missing required Firebase settings: {', '.join(missing)}"
        )

    return {
        "type": "service_account",
        "project_id": settings.FIREBASE_PROJECT_ID,
        "private_key_id": settings.FIREBASE_PRIVATE_KEY_ID,
        # Keys pasted into env files usually carry escaped newlines
        "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
        "client_email": settings.FIREBASE_CLIENT_EMAIL,
        "client_id": settings.FIREBASE_CLIENT_ID,
        "auth_uri": settings.FIREBASE_AUTH_URI,
        "token_uri": settings.FIREBASE_TOKEN_URI,
        "auth_provider_x509_cert_url": settings.FIREBASE_AUTH_PROVIDER_CERT_URL,
        "client_x509_cert_url": settings.FIREBASE_CLIENT_CERT_URL,
    }


def initialize_firebase(settings) -> firebase_admin.App:
    """
    Initialize (or reuse) the Firebase Admin app.

    Raises:
        CollaboratorUnavailableError: If settings are missing or invalid
    """
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    service_account = build_service_account(settings)
    try:
        cred = credentials.Certificate(service_account)
        app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)
    except (ValueError, IOError) as e:
        raise CollaboratorUnavailableError(f"Firebase Admin initialization failed: {e}") from e

    logger.info(f"Firebase Admin initialized (project: {settings.FIREBASE_PROJECT_ID})")
    return app


class FirebaseDelivery:
    """Sends push messages to a single device token via FCM."""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    async def send(
        self,
        device_token: str,
        title: str,
        body: str,
        data: Optional[Dict[str, str]] = None,
    ) -> DeliveryResult:
        """
        Send one notification.

        Args:
            device_token: FCM registration token
            title: Notification title
            body: Notification body
            data: String-valued payload for the client

        Returns:
            DeliveryResult: success flag with message id or error text
        """
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data={key: str(value) for key, value in (data or {}).items()},
            token=device_token,
        )

        try:
            message_id = await asyncio.to_thread(messaging.send, message, False, self.app)
        except (FirebaseError, ValueError) as e:
            logger.error(f"Failed to send notification: {e}")
            return DeliveryResult(success=False, error=str(e))

        logger.info(f"Notification sent: {message_id}")
        return DeliveryResult(success=True, message_id=message_id)

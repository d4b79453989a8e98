"""
MEALY Firebase Cloud Messaging (FCM) Service

Push notification sender for the household food updates.
"""

import logging
from typing import Optional, Dict
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timezone

from firebase_admin import messaging
from core.database import init_firebase, is_mock_mode

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    """Types of push notifications."""
    FOOD_FINISHED = "food_finished"
    STILL_NEED_TO_EAT = "still_need_to_eat"


@dataclass
class PushNotification:
    """Push notification payload."""
    title: str
    body: str
    notification_type: NotificationType
    data: Optional[Dict[str, str]] = None


class FCMService:
    """
    Firebase Cloud Messaging service for push notifications.

    One attempt per message, no retries. Failures are logged and counted,
    never raised, so a bad token cannot break a fan-out.
    """

    def __init__(self):
        self._initialized = False
        self._mock_mode = False
        self._sent_count = 0
        self._failed_count = 0

    def initialize(self):
        """Initialize FCM (requires Firebase Admin SDK)."""
        if self._initialized:
            return

        init_firebase()
        self._mock_mode = is_mock_mode()
        self._initialized = True

        if self._mock_mode:
            logger.warning("🧪 FCM running in MOCK MODE - notifications will be logged only")
        else:
            logger.info("🔔 FCM Service initialized")

    def _build_message(self, notification: PushNotification, token: str) -> messaging.Message:
        """Build FCM message object."""
        data = dict(notification.data or {})
        data["notification_type"] = notification.notification_type.value
        data["timestamp"] = datetime.now(timezone.utc).isoformat()

        return messaging.Message(
            notification=messaging.Notification(
                title=notification.title,
                body=notification.body
            ),
            data=data,
            android=messaging.AndroidConfig(priority="high"),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(sound="default")
                )
            ),
            token=token
        )

    async def send_to_device(
        self,
        device_token: str,
        notification: PushNotification
    ) -> Optional[str]:
        """
        Send notification to a specific device.

        Returns:
            Message ID on success, None on failure
        """
        self.initialize()

        if self._mock_mode:
            logger.info(
                f"📱 [MOCK] Notification to device: {device_token[:20]}...\n"
                f"   Title: {notification.title}\n"
                f"   Body: {notification.body}"
            )
            self._sent_count += 1
            return "mock_message_id"

        try:
            message = self._build_message(notification, device_token)
            response = messaging.send(message)

            self._sent_count += 1
            logger.info(f"✅ Notification sent: {response}")
            return response

        except messaging.UnregisteredError:
            logger.warning(f"Device token expired: {device_token[:20]}...")
            self._failed_count += 1
            return None

        except Exception as e:
            logger.error(f"Failed to send notification: {e}")
            self._failed_count += 1
            return None

    def get_stats(self) -> dict:
        """Get notification statistics."""
        return {
            "initialized": self._initialized,
            "mock_mode": self._mock_mode,
            "sent_count": self._sent_count,
            "failed_count": self._failed_count
        }


# Global FCM service instance
fcm_service = FCMService()

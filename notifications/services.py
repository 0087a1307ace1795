"""
Notification sink.

`NotificationService.emit` stores the notification in the caller's
transaction. When the owner has shipment e-mails enabled, the e-mail
is queued once that transaction commits.
"""

import logging
from typing import Optional

from django.db import transaction

from .models import Notification, NotificationType

logger = logging.getLogger(__name__)

SHIPMENT_TYPES = {
    NotificationType.SHIPMENT_CREATED,
    NotificationType.SHIPMENT_PICKED,
    NotificationType.SHIPMENT_IN_TRANSIT,
    NotificationType.SHIPMENT_DELIVERED,
    NotificationType.SHIPMENT_FAILED,
}


class NotificationService:

    @staticmethod
    def wants_email(user, notification_type: str) -> bool:
        from core.preferences import PreferenceService

        prefs = PreferenceService.load(user)
        if not prefs.email_notifications:
            return False
        if notification_type in SHIPMENT_TYPES:
            return prefs.shipment_updates
        return True

    @classmethod
    def emit(cls, user, notification_type: str, title: str, message: str,
             data: Optional[dict] = None) -> Notification:
        """Create a notification for `user` and queue its e-mail if wanted."""
        notification = Notification.objects.create(
            user=user,
            type=notification_type,
            title=title,
            message=message,
            data=data or {},
        )
        logger.debug(f"[NOTIFY] {notification_type} -> {user.email}")

        if cls.wants_email(user, notification_type):
            from .tasks import send_notification_email

            notification_id = str(notification.pk)
            transaction.on_commit(lambda: send_notification_email.delay(notification_id))

        return notification

    @staticmethod
    def unread_count(user) -> int:
        return Notification.objects.filter(user=user, is_read=False).count()

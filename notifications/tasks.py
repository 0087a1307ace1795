"""
NOTIFICATIONS App - Celery Tasks

Delivers notification e-mails outside the request cycle.
"""

import logging
from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
)
def send_notification_email(self, notification_id: str):
    """
    E-mail one notification to its owner and mark it as sent.

    Args:
        notification_id: Notification UUID string
    """
    from notifications.models import Notification

    notification = (
        Notification.objects.select_related('user')
        .filter(pk=notification_id)
        .first()
    )
    if notification is None:
        logger.warning(f"[TASK] Notification {notification_id} no longer exists")
        return False

    if notification.is_email_sent:
        return True

    try:
        send_mail(
            subject=f"[CourierDesk] {notification.title}",
            message=notification.message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[notification.user.email],
        )
    except Exception as e:
        logger.error(f"[TASK] Error sending notification e-mail: {e}")
        raise self.retry(exc=e)

    notification.is_email_sent = True
    notification.save(update_fields=['is_email_sent'])
    logger.info(f"[TASK] Notification e-mail sent to {notification.user.email}")
    return True

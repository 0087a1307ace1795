"""
ANALYTICS App - Celery Tasks
"""

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def render_weekly_report(user, summary: dict) -> str:
    name = user.full_name or user.email
    return (
        f"Hello {name},\n\n"
        f"Your shipments over the last 7 days:\n"
        f"  Created:   {summary['created']}\n"
        f"  Delivered: {summary['delivered']}\n"
        f"  Failed:    {summary['failed']}\n"
        f"  Spend:     {summary['spend']}\n\n"
        f"CourierDesk"
    )


@shared_task(name='analytics.tasks.send_weekly_reports')
def send_weekly_reports():
    """
    E-mail a weekly summary to every active user with `weekly_reports` on.

    Runs on Monday mornings (see CELERY_BEAT_SCHEDULE). A failure for one
    recipient is logged and does not stop the others.
    """
    from core.actors import Actor
    from core.models import User
    from core.preferences import PreferenceService
    from .services import weekly_summary

    sent = 0
    for user in User.objects.filter(is_active=True).iterator():
        if not PreferenceService.load(user).weekly_reports:
            continue
        summary = weekly_summary(Actor.from_user(user))
        try:
            send_mail(
                subject="[CourierDesk] Your weekly shipping report",
                message=render_weekly_report(user, summary),
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[user.email],
            )
            sent += 1
        except Exception as e:
            logger.error(f"[REPORT TASK] Weekly report to {user.email} failed: {e}")

    logger.info(f"[REPORT TASK] Weekly reports sent: {sent}")
    return sent

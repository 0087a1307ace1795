"""
System log helpers.

`record_action` writes a SystemLog row for admin review; it is
called from services and views inside their own transaction.
"""

import logging
from typing import Optional

from .models import SystemLog, LogStatus

logger = logging.getLogger(__name__)


def client_ip(request) -> Optional[str]:
    """Extract real client IP, considering proxy headers."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def record_action(
    action: str,
    module: str,
    description: str,
    user_id=None,
    user_email: str = '',
    details: Optional[dict] = None,
    status: str = LogStatus.SUCCESS,
    error_message: str = '',
    request=None,
) -> SystemLog:
    """Persist one audit entry. `user_id` is None for anonymous actions."""
    entry = SystemLog(
        action=action,
        module=module,
        description=description,
        user_id=user_id,
        user_email=user_email or '',
        details=details or {},
        status=status,
        error_message=error_message,
    )

    if request is not None:
        entry.ip_address = client_ip(request)
        entry.user_agent = request.META.get('HTTP_USER_AGENT', '')[:255]

    entry.save()
    logger.debug(f"[AUDIT] {module}/{action} {status}: {description}")
    return entry

"""
Dashboard preferences.

Each setting is resolved key by key with a fixed precedence:

    server value (User.preferences)  >  cached value  >  default

The cached layer is the Django cache, written whenever the server copy
changes, so a session keeps its last known settings even when it only
gets a partial server document.
"""

import logging
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.cache import cache

from .exceptions import InvalidInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Preferences:
    dark_mode: bool = True
    compact_view: bool = False
    email_notifications: bool = True
    shipment_updates: bool = True
    marketing_emails: bool = False
    weekly_reports: bool = True
    default_service_type: str = 'standard'
    auto_generate_label: bool = True
    currency: str = 'INR'
    timezone: str = 'Asia/Kolkata'
    share_analytics: bool = True
    two_factor_auth: bool = False

    @classmethod
    def keys(cls):
        return [f.name for f in fields(cls)]

    @classmethod
    def resolve(
        cls,
        server: Optional[Dict[str, Any]] = None,
        cached: Optional[Dict[str, Any]] = None,
    ) -> 'Preferences':
        """Merge server > cached > default, ignoring unknown keys."""
        server = server or {}
        cached = cached or {}
        values = {}
        for key in cls.keys():
            if key in server:
                values[key] = server[key]
            elif key in cached:
                values[key] = cached[key]
        return cls(**values)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


_BOOL_KEYS = {f.name for f in fields(Preferences) if f.type in (bool, 'bool')}


def clean_update(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Keep only known preference keys and validate their types.

    Raises:
        InvalidInput: wrong type for a boolean setting or an unknown
            default service type.
    """
    from logistics.models import ServiceType

    cleaned = {}
    for key in Preferences.keys():
        if key not in data:
            continue
        value = data[key]
        if key in _BOOL_KEYS and not isinstance(value, bool):
            raise InvalidInput(f"'{key}' must be true or false")
        if key == 'default_service_type' and value not in ServiceType.values:
            raise InvalidInput(f"Unknown service type '{value}'")
        cleaned[key] = value
    return cleaned


class PreferenceService:
    """Loads and stores a user's preferences across the server and cache layers."""

    @staticmethod
    def _cache_key(user_id) -> str:
        return f"prefs:{user_id}"

    @classmethod
    def load(cls, user) -> Preferences:
        cached = cache.get(cls._cache_key(user.pk))
        return Preferences.resolve(server=user.preferences, cached=cached)

    @classmethod
    def _store(cls, user, values: Dict[str, Any]) -> Preferences:
        user.preferences = values
        user.save(update_fields=['preferences'])
        prefs = Preferences.resolve(server=values)
        cache.set(cls._cache_key(user.pk), prefs.as_dict(), settings.PREFERENCES_CACHE_TIMEOUT)
        return prefs

    @classmethod
    def update(cls, user, data: Dict[str, Any]) -> Preferences:
        changes = clean_update(data)
        current = cls.load(user).as_dict()
        current.update(changes)
        logger.info(f"[PREFS] {user.email} updated {sorted(changes)}")
        return cls._store(user, current)

    @classmethod
    def reset(cls, user) -> Preferences:
        logger.info(f"[PREFS] {user.email} reset to defaults")
        return cls._store(user, Preferences().as_dict())

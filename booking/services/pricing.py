"""
pricing.py
----------
Pricing and package constants, supplied by configuration.

Lookup order for every key:
1) configmgr.SystemSetting row with the same key (runtime override)
2) settings.BOOKING_DEFAULTS
Malformed override rows are logged and ignored.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings

log = logging.getLogger(__name__)

FALLBACK_DEFAULTS = {
    "SESSION_PRICE": 50,
    "PACKAGE_PRICE": 200,
    "PACKAGE_SESSIONS": 8,
    "PACKAGE_DURATION_DAYS": 90,
}


def _default(key):
    defaults = getattr(settings, "BOOKING_DEFAULTS", {}) or {}
    return defaults.get(key, FALLBACK_DEFAULTS[key])


def get_setting(key: str, cast=int):
    """
    Return the configured value for `key`, cast with `cast`.
    """
    from configmgr.models import SystemSetting

    row = SystemSetting.objects.filter(key=key).first()
    if row is not None:
        try:
            return cast(row.value.strip())
        except (ValueError, InvalidOperation):
            log.warning("Ignoring malformed SystemSetting %s=%r", key, row.value)
    return cast(_default(key))


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def session_price() -> Decimal:
    return get_setting("SESSION_PRICE", cast=_money)


def package_price() -> Decimal:
    return get_setting("PACKAGE_PRICE", cast=_money)


def package_sessions() -> int:
    return get_setting("PACKAGE_SESSIONS")


def package_duration_days() -> int:
    return get_setting("PACKAGE_DURATION_DAYS")

"""Replay protection: reject payloads whose auth_date is too old.

The reference time is always passed in, never read from the clock here.
"""

import logging
import re
from datetime import timedelta

from .payload import AUTH_DATE_FIELD
from .result import ValidationResult


logger = logging.getLogger(__name__)

# Unsigned 64-bit seconds: at most 20 digits
_DECIMAL = re.compile(r"[0-9]{1,20}")


def _seconds(max_age: int | timedelta) -> float:
    if isinstance(max_age, timedelta):
        return max_age.total_seconds()
    return max_age


def check_freshness(
    fields: dict[str, str], max_age: int | timedelta, now: int | float,
) -> ValidationResult:
    """Return VALID if auth_date lies within max_age seconds before now."""
    auth_date_str = fields.get(AUTH_DATE_FIELD)
    if auth_date_str is None:
        logger.warning("launch payload has no auth_date",
                       extra={"event": "missing_auth_date"})
        return ValidationResult.MISSING_TIMESTAMP

    if not _DECIMAL.fullmatch(auth_date_str):
        logger.warning("launch payload auth_date is not a decimal timestamp",
                       extra={"event": "invalid_auth_date"})
        return ValidationResult.INVALID_TIMESTAMP_FORMAT

    auth_date = int(auth_date_str)
    now = int(now)
    # Saturating: a future auth_date counts as age 0
    age = max(0, now - auth_date)
    if auth_date > now:
        logger.debug("launch payload auth_date is %ds in the future",
                     auth_date - now, extra={"event": "auth_date_in_future"})

    if age > _seconds(max_age):
        logger.warning("launch payload is stale (age %ds)", age,
                       extra={"event": "stale_auth_date", "age": age})
        return ValidationResult.STALE
    return ValidationResult.VALID

"""Mini App launch payload (initData) parsing.

The payload is an ampersand-delimited string of percent-encoded
``key=value`` pairs, as produced by the Telegram WebApp SDK. Decoding is
strict: a broken escape or invalid UTF-8 rejects the whole payload rather
than yielding a partial map.
"""

import json
import re
from urllib.parse import unquote_to_bytes


HASH_FIELD = "hash"
SIGNATURE_FIELD = "signature"
AUTH_DATE_FIELD = "auth_date"
USER_FIELD = "user"

# Fields carrying signature material, never part of the signed content.
RESERVED_FIELDS = frozenset({HASH_FIELD, SIGNATURE_FIELD})

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class MalformedPayload(ValueError):
    """Raised when a payload segment cannot be decoded."""

    def __init__(self, index: int, reason: str):
        super().__init__(f"segment {index}: {reason}")
        self.index = index
        self.reason = reason


def _decode(component: str, index: int) -> str:
    if _BAD_ESCAPE.search(component):
        raise MalformedPayload(index, "invalid percent escape")
    try:
        raw = unquote_to_bytes(component.replace("+", " "))
        return raw.decode("utf-8")
    except UnicodeError:
        raise MalformedPayload(index, "invalid UTF-8") from None


def parse_payload(raw: str) -> dict[str, str]:
    """Parse a raw payload into a flat dict.

    Empty segments are skipped and a segment without ``=`` gets an empty
    value. When a key repeats, the first occurrence wins.
    """
    result: dict[str, str] = {}
    for index, segment in enumerate(raw.split("&")):
        if not segment:
            continue
        key_part, _, value_part = segment.partition("=")
        key = _decode(key_part, index)
        if not key:
            raise MalformedPayload(index, "empty key")
        value = _decode(value_part, index)
        result.setdefault(key, value)
    return result


def decode_user(fields: dict[str, str]) -> dict | None:
    """Decode the JSON ``user`` object, or None if absent or not an object."""
    user_json = fields.get(USER_FIELD, "")
    if not user_json:
        return None
    try:
        user = json.loads(user_json)
    except (json.JSONDecodeError, RecursionError):
        return None
    return user if isinstance(user, dict) else None

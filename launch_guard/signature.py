"""HMAC-SHA256 signing of launch payloads.

The signing key is SHA-256(bot_token); the signature is the lowercase hex
HMAC-SHA256 of the canonical data-check-string under that key.
"""

import hashlib
import hmac
from urllib.parse import urlencode

from .canonical import build_canonical_string
from .payload import HASH_FIELD, RESERVED_FIELDS


class HmacDerivationError(Exception):
    """Raised when the signing key or the signature cannot be computed."""


def derive_secret(bot_token: str) -> bytes:
    """Derive the 32-byte signing key from the bot token."""
    try:
        return hashlib.sha256(bot_token.encode("utf-8")).digest()
    except (AttributeError, UnicodeError) as e:
        raise HmacDerivationError(f"cannot derive key: {type(e).__name__}") from None


def compute_signature(canonical: str, bot_token: str) -> str:
    """Compute the hex HMAC-SHA256 of the canonical string."""
    secret = derive_secret(bot_token)
    try:
        message = canonical.encode("utf-8")
    except (AttributeError, UnicodeError) as e:
        raise HmacDerivationError(f"cannot encode message: {type(e).__name__}") from None
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def signatures_match(computed: str, provided: str | None) -> bool:
    """Constant-time comparison of two hex signatures."""
    if not isinstance(provided, str):
        return False
    return hmac.compare_digest(
        computed.encode("ascii"), provided.encode("utf-8", "surrogatepass"),
    )


def sign_fields(fields: dict[str, str], bot_token: str) -> str:
    """Build a signed wire payload from plain fields.

    Reserved fields in the input are dropped; the result carries the
    computed signature in ``hash``.
    """
    params = {k: v for k, v in fields.items() if k not in RESERVED_FIELDS}
    params[HASH_FIELD] = compute_signature(build_canonical_string(params), bot_token)
    return urlencode(params)

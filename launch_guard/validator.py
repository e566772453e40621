"""Telegram Mini App launch payload validation.

Validates the initData string sent by the Telegram WebApp SDK to ensure
the request is authentic and not replayed. The payload is parsed exactly
once per call; the freshness check runs before any cryptography so that
stale or undated payloads never cost an HMAC. Pure functions, no I/O
apart from logging.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from .canonical import build_canonical_string
from .freshness import check_freshness
from .payload import AUTH_DATE_FIELD, HASH_FIELD, MalformedPayload, decode_user, parse_payload
from .result import ValidationResult
from .signature import HmacDerivationError, compute_signature, signatures_match


logger = logging.getLogger(__name__)


class Mode(Enum):
    ENFORCE = "enforce"
    BYPASS = "bypass"


def parse_mode(value: str) -> Mode:
    """Parse a mode name from configuration ("enforce" or "bypass")."""
    try:
        return Mode(value.strip().lower())
    except ValueError:
        valid = ", ".join(m.value for m in Mode)
        raise ValueError(f"Invalid mode '{value}'. Valid modes: {valid}") from None


@dataclass(frozen=True)
class Verdict:
    result: ValidationResult
    fields: dict[str, str] = field(default_factory=dict, hash=False)

    @property
    def ok(self) -> bool:
        return self.result.ok

    @property
    def user(self) -> dict | None:
        return decode_user(self.fields)

    @property
    def user_id(self) -> int | None:
        user = self.user
        if user is None:
            return None
        user_id = user.get("id")
        # bool is an int subclass
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            return None
        return user_id

    @property
    def auth_date(self) -> int | None:
        value = self.fields.get(AUTH_DATE_FIELD, "")
        return int(value) if value.isascii() and value.isdigit() else None


def validate_launch(
    raw: str,
    bot_token: str,
    max_auth_age: int | timedelta,
    mode: Mode,
    now: int | float,
    provided_signature: str | None = None,
) -> Verdict:
    """Validate a launch payload and return the verdict.

    The verdict carries the parsed fields only when the payload is VALID.

    When provided_signature is None the signature is read from the
    payload's own ``hash`` field.
    """
    if not isinstance(mode, Mode):
        raise TypeError(f"mode must be a Mode, got {type(mode).__name__}")

    if mode is Mode.BYPASS:
        logger.warning("launch payload validation BYPASSED",
                       extra={"event": "validation_bypassed"})
        return Verdict(ValidationResult.VALID)

    try:
        fields = parse_payload(raw)
    except MalformedPayload as e:
        logger.debug("launch payload malformed: %s", e.reason,
                     extra={"event": "malformed_payload", "segment": e.index})
        return Verdict(ValidationResult.MALFORMED_INPUT)

    freshness = check_freshness(fields, max_auth_age, now)
    if not freshness.ok:
        return Verdict(freshness)

    if provided_signature is None:
        provided_signature = fields.get(HASH_FIELD)

    try:
        computed = compute_signature(build_canonical_string(fields), bot_token)
    except HmacDerivationError as e:
        logger.error("launch payload signature could not be computed: %s", e,
                     extra={"event": "hmac_derivation_failed"})
        return Verdict(ValidationResult.HMAC_DERIVATION_FAILURE)

    if not signatures_match(computed, provided_signature):
        logger.debug("launch payload signature mismatch",
                     extra={"event": "signature_mismatch"})
        return Verdict(ValidationResult.SIGNATURE_MISMATCH)

    logger.debug("launch payload valid", extra={"event": "payload_valid"})
    return Verdict(ValidationResult.VALID, fields)


def validate(
    raw: str,
    provided_signature: str,
    bot_token: str,
    max_auth_age: int | timedelta,
    mode: Mode,
    now: int | float,
) -> ValidationResult:
    """Validate a launch payload against a caller-supplied signature.

    A missing signature never falls back to the payload's own hash field.
    """
    return validate_launch(
        raw, bot_token, max_auth_age, mode, now,
        provided_signature=provided_signature or "",
    ).result

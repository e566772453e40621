from enum import Enum


class ValidationResult(Enum):
    VALID = "valid"
    STALE = "stale"
    MISSING_TIMESTAMP = "missing_timestamp"
    INVALID_TIMESTAMP_FORMAT = "invalid_timestamp_format"
    MALFORMED_INPUT = "malformed_input"
    SIGNATURE_MISMATCH = "signature_mismatch"
    HMAC_DERIVATION_FAILURE = "hmac_derivation_failure"

    @property
    def ok(self) -> bool:
        return self is ValidationResult.VALID

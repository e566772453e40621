from .payload import RESERVED_FIELDS


def build_canonical_string(fields: dict[str, str]) -> str:
    """Build the sorted newline-separated data-check-string for HMAC.

    Reserved fields are left out. Keys sort by their UTF-8 bytes so the
    order never depends on locale.
    """
    items = [(k, v) for k, v in fields.items() if k not in RESERVED_FIELDS]
    items.sort(key=lambda kv: kv[0].encode("utf-8"))
    return "\n".join(f"{k}={v}" for k, v in items)

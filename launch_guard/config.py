import logging
from dataclasses import dataclass, field

from .validator import Mode, parse_mode


logger = logging.getLogger(__name__)

DEFAULT_MAX_AUTH_AGE = 86400
DEFAULT_MAX_PAYLOAD_BYTES = 4096


@dataclass
class Config:
    bot_token: str
    mode: Mode = Mode.ENFORCE
    max_auth_age: int = DEFAULT_MAX_AUTH_AGE
    max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
    allowed_users: set[int] = field(default_factory=set)
    webapp_url: str = ""
    api_host: str = "0.0.0.0"
    api_port: int = 0
    cors_origin: str = "*"
    log_level: str = "INFO"


def _parse_allowed_users(raw: str) -> set[int]:
    """Parse comma-separated user IDs into a set."""
    return set(int(x) for x in raw.split(",") if x.strip())


def _get_int(config, section: str, key: str, default: int) -> int:
    if not config.has_section(section):
        return default
    raw = config[section].get(key, "").strip()
    return int(raw) if raw else default


def _get_str(config, section: str, key: str, default: str) -> str:
    if not config.has_section(section):
        return default
    return config[section].get(key, "").strip() or default


def load_config(config) -> Config:
    """Build a Config from a parsed configparser object."""
    bot_token = config["TELEGRAM"]["bot_token"].strip()
    if not bot_token:
        raise ValueError("TELEGRAM.bot_token is empty")

    allowed = config["TELEGRAM"].get("allowed_users", "").strip()
    allowed_users = _parse_allowed_users(allowed) if allowed else set()

    mode = parse_mode(_get_str(config, "VALIDATION", "mode", Mode.ENFORCE.value))
    if mode is Mode.BYPASS:
        logger.warning("Config selects BYPASS mode: launch payloads will NOT be validated")

    return Config(
        bot_token=bot_token,
        mode=mode,
        max_auth_age=_get_int(config, "VALIDATION", "max_auth_age", DEFAULT_MAX_AUTH_AGE),
        max_payload_bytes=_get_int(
            config, "VALIDATION", "max_payload_bytes", DEFAULT_MAX_PAYLOAD_BYTES,
        ),
        allowed_users=allowed_users,
        webapp_url=config["TELEGRAM"].get("webapp_url", "").strip(),
        api_host=_get_str(config, "API", "host", "0.0.0.0"),
        api_port=_get_int(config, "API", "port", 0),
        cors_origin=_get_str(config, "API", "cors_origin", "*"),
        log_level=_get_str(config, "LOGGING", "level", "INFO").upper(),
    )


def is_allowed(config: Config, user_id: int | None) -> bool:
    """Check if a validated user may use the API (empty allowlist allows all)."""
    if not config.allowed_users:
        return True
    return user_id in config.allowed_users

import argparse
import configparser
import logging
import sys
import time

from .config import Config, load_config
from .payload import AUTH_DATE_FIELD
from .signature import sign_fields
from .validator import validate_launch


def _read_config(path: str) -> Config:
    parser = configparser.ConfigParser()
    if not parser.read(path):
        raise SystemExit(f"Config file not found: {path}")
    return load_config(parser)


def _parse_pairs(pairs: list[str]) -> dict[str, str]:
    """Parse key=value command-line arguments into a dict."""
    fields = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise SystemExit(f"Expected key=value, got '{pair}'")
        fields[key] = value
    return fields


def cmd_serve(config: Config, args) -> int:
    from telegram.ext import Application, CommandHandler

    from .handlers import help_command, post_init, post_shutdown, start_command, webapp_command

    app = (
        Application.builder()
        .token(config.bot_token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    app.bot_data["config"] = config

    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("webapp", webapp_command))

    logging.getLogger(__name__).info("Bot started...")
    app.run_polling()
    return 0


def cmd_check(config: Config, args) -> int:
    init_data = args.init_data if args.init_data is not None else sys.stdin.read().strip()
    now = args.now if args.now is not None else time.time()
    verdict = validate_launch(
        init_data, config.bot_token, config.max_auth_age, config.mode, now,
    )
    print(verdict.result.value)
    return 0 if verdict.ok else 1


def cmd_sign(config: Config, args) -> int:
    fields = _parse_pairs(args.fields)
    fields.setdefault(AUTH_DATE_FIELD, str(int(args.now if args.now is not None else time.time())))
    print(sign_fields(fields, config.bot_token))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mini App launch payload guard")
    parser.add_argument("-c", "--config", type=str, default="config.ini", help="Path to config file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the bot and the HTTP API")

    check = sub.add_parser("check", help="Validate an initData string (argument or stdin)")
    check.add_argument("init_data", nargs="?", default=None)
    check.add_argument("--now", type=int, default=None, help="Reference time (epoch seconds)")

    sign = sub.add_parser("sign", help="Issue a signed initData string from key=value pairs")
    sign.add_argument("fields", nargs="*")
    sign.add_argument("--now", type=int, default=None, help="auth_date to embed (epoch seconds)")
    return parser


COMMANDS = {
    "serve": cmd_serve,
    "check": cmd_check,
    "sign": cmd_sign,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = _read_config(args.config)
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return COMMANDS[args.command](config, args)

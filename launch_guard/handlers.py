import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update, WebAppInfo
from telegram.ext import ContextTypes

from .config import Config, is_allowed
from .validator import Mode


logger = logging.getLogger(__name__)


HELP_TEXT = """Launch Guard Bot

Opens the Mini App; every request it makes is checked against the
signed launch data Telegram hands it.

Commands:
/webapp - Open the Mini App
/help - Show this message"""


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    await update.message.reply_text(HELP_TEXT)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    await update.message.reply_text(HELP_TEXT)


async def webapp_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /webapp command — reply with a button that opens the Mini App."""
    config: Config = context.bot_data["config"]
    if not is_allowed(config, update.effective_user.id):
        return

    if not config.webapp_url:
        await update.message.reply_text("Mini App is not configured.")
        return

    button = InlineKeyboardButton("Open App", web_app=WebAppInfo(url=config.webapp_url))
    keyboard = InlineKeyboardMarkup([[button]])
    await update.message.reply_text("Tap to open:", reply_markup=keyboard)


async def post_init(app) -> None:
    """Start the HTTP API if configured."""
    config: Config = app.bot_data["config"]
    if config.mode is Mode.BYPASS:
        logger.warning("Launch payload validation is BYPASSED: never run this in production")

    if config.api_port > 0:
        from aiohttp import web as aio_web
        from .web_api import create_web_app

        web_app = create_web_app(config)
        runner = aio_web.AppRunner(web_app)
        await runner.setup()
        site = aio_web.TCPSite(runner, config.api_host, config.api_port)
        await site.start()
        app.bot_data["_api_runner"] = runner
        logger.info("HTTP API started on %s:%d", config.api_host, config.api_port)


async def post_shutdown(app) -> None:
    """Clean up the HTTP API server."""
    runner = app.bot_data.get("_api_runner")
    if runner:
        await runner.cleanup()

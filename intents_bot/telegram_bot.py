"""
Telegram adapter for the intent bot.

Requires the ``telegram`` extra: pip install intents-bot[telegram]
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .chat import IntentBot, BUSY_MESSAGE, GENERIC_ERROR_MESSAGE
from .config import BotSettings
from .exceptions import ConfigError
from .pipeline import IntentPipeline

logger = logging.getLogger(__name__)

# Upper bound for delivering one reply from a pipeline worker thread
REPLY_TIMEOUT = 30


def build_application(settings: BotSettings, bot: Optional[IntentBot] = None) -> Application:
    """
    Build a Telegram application wired to ``bot``.

    Args:
        settings: Bot settings; ``bot_token`` is required
        bot: Intent bot (defaults to one built from ``settings``)

    Raises:
        ConfigError: If no bot token is configured
    """
    if not settings.bot_token:
        raise ConfigError("BOT_TOKEN is not set. Add it to your environment before starting the bot.")
    if bot is None:
        bot = IntentBot(IntentPipeline.from_settings(settings))

    async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await update.message.reply_text(bot.start())

    async def cmd_create_account(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        text = await asyncio.to_thread(bot.create_account, update.effective_user.id)
        await update.message.reply_text(text)

    async def cmd_wallet(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        text = await asyncio.to_thread(bot.wallet, update.effective_user.id)
        await update.message.reply_text(text)

    # Users with an intent in flight; only touched on the event loop thread
    in_flight = set()

    async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user_id = update.effective_user.id
        # A queued run would park a worker thread for the whole confirmation wait
        if user_id in in_flight or bot.pipeline.is_busy(user_id):
            await update.message.reply_text(BUSY_MESSAGE)
            return

        loop = asyncio.get_running_loop()

        def reply(text: str) -> None:
            future = asyncio.run_coroutine_threadsafe(update.message.reply_text(text), loop)
            future.result(timeout=REPLY_TIMEOUT)

        in_flight.add(user_id)
        try:
            # The pipeline blocks on RPC calls and receipt waits
            await asyncio.to_thread(bot.handle_text, user_id, update.message.text, reply)
        finally:
            in_flight.discard(user_id)

    async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error(f"Error while handling update: {context.error}", exc_info=context.error)
        if isinstance(update, Update) and update.effective_message is not None:
            await update.effective_message.reply_text(GENERIC_ERROR_MESSAGE)

    app = (
        Application.builder()
        .token(settings.bot_token)
        .concurrent_updates(True)
        .build()
    )
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("createaccount", cmd_create_account))
    app.add_handler(CommandHandler("wallet", cmd_wallet))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    app.add_error_handler(on_error)
    return app


def main() -> None:
    """Run the bot with settings from the environment"""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=logging.INFO,
    )
    # httpx logs every Telegram poll at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    settings = BotSettings.from_env()
    app = build_application(settings)
    logger.info(f"Bot is running on {settings.network} (chain id {settings.chain_id})")
    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()

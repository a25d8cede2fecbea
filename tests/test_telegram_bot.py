"""
Tests for the Telegram adapter.
"""
import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

pytest.importorskip("telegram")

from telegram.ext import CommandHandler, MessageHandler  # noqa: E402

from intents_bot.chat import IntentBot, BUSY_MESSAGE, PROCESSING_MESSAGE  # noqa: E402
from intents_bot.config import BotSettings  # noqa: E402
from intents_bot.exceptions import ConfigError  # noqa: E402
from intents_bot.telegram_bot import build_application  # noqa: E402

TEST_TOKEN = "123456:ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghi"


@pytest.fixture
def settings():
    return BotSettings.for_network("base", rpc_url="https://rpc.example.com", bot_token=TEST_TOKEN)


def _handlers(app):
    return [h for group in app.handlers.values() for h in group]


def _command_callback(app, name):
    for handler in _handlers(app):
        if isinstance(handler, CommandHandler) and name in handler.commands:
            return handler.callback
    raise AssertionError(f"no handler for /{name}")


def _update(user_id=1, text="hello"):
    update = MagicMock()
    update.effective_user.id = user_id
    update.message.text = text
    update.message.reply_text = AsyncMock()
    return update


def test_missing_token_raises(settings):
    no_token = settings.model_copy(update={"bot_token": None})
    with pytest.raises(ConfigError, match="BOT_TOKEN"):
        build_application(no_token, bot=MagicMock())


def test_registers_commands_and_text_handler(settings, pipeline):
    app = build_application(settings, bot=IntentBot(pipeline))

    commands = set()
    for handler in _handlers(app):
        if isinstance(handler, CommandHandler):
            commands |= set(handler.commands)
    assert commands == {"start", "createaccount", "wallet"}
    assert any(isinstance(h, MessageHandler) for h in _handlers(app))
    assert app.error_handlers


def test_create_account_command_replies_with_address(settings, pipeline, vault):
    app = build_application(settings, bot=IntentBot(pipeline))
    update = _update(user_id=5)

    asyncio.run(_command_callback(app, "createaccount")(update, MagicMock()))

    text = update.message.reply_text.await_args.args[0]
    assert vault.get(5).address in text


def test_text_handler_acknowledges_then_replies(settings, pipeline):
    bot = IntentBot(pipeline)
    bot.create_account(1)
    app = build_application(settings, bot=bot)
    text_handler = next(h for h in _handlers(app) if isinstance(h, MessageHandler))
    update = _update(user_id=1, text="send 0.001 eth to bob")

    asyncio.run(text_handler.callback(update, MagicMock()))

    replies = [call.args[0] for call in update.message.reply_text.await_args_list]
    assert replies[0] == PROCESSING_MESSAGE
    assert "Transaction successful" in replies[1]


def _text_callback(app):
    return next(h for h in _handlers(app) if isinstance(h, MessageHandler)).callback


def test_busy_user_is_turned_away_without_a_worker(settings):
    bot = MagicMock()
    bot.pipeline.is_busy.return_value = True
    app = build_application(settings, bot=bot)
    update = _update(user_id=1, text="send 0.001 eth to bob")

    asyncio.run(_text_callback(app)(update, MagicMock()))

    update.message.reply_text.assert_awaited_once_with(BUSY_MESSAGE)
    bot.handle_text.assert_not_called()


def test_second_intent_while_first_in_flight(settings):
    bot = MagicMock()
    bot.pipeline.is_busy.return_value = False
    started = threading.Event()
    release = threading.Event()

    def slow_intent(user_id, text, reply):
        started.set()
        release.wait(timeout=5)
        reply("done")

    bot.handle_text.side_effect = slow_intent
    callback = _text_callback(build_application(settings, bot=bot))
    first = _update(user_id=1, text="first")
    second = _update(user_id=1, text="second")
    other_user = _update(user_id=2, text="other")

    async def scenario():
        task = asyncio.create_task(callback(first, MagicMock()))
        assert await asyncio.to_thread(started.wait, 5)
        await callback(second, MagicMock())
        release.set()
        await task
        await callback(other_user, MagicMock())

    asyncio.run(scenario())

    second.message.reply_text.assert_awaited_once_with(BUSY_MESSAGE)
    first.message.reply_text.assert_awaited_once_with("done")
    other_user.message.reply_text.assert_awaited_once_with("done")
    assert [c.args[1] for c in bot.handle_text.call_args_list] == ["first", "other"]

"""
Tests for the transport-agnostic IntentBot handlers.
"""
from unittest.mock import MagicMock

import requests
from eth_account import Account

from intents_bot.abi import NATIVE_SENTINEL
from intents_bot.accounts import AccountVault
from intents_bot.chat import (
    IntentBot, NO_ACCOUNT_MESSAGE, PROCESSING_MESSAGE, WELCOME_MESSAGE
)
from conftest import NATIVE_AMOUNT, preview_outputs


def test_start_message(pipeline):
    assert IntentBot(pipeline).start() == WELCOME_MESSAGE


def test_create_account_then_show_existing(pipeline, vault):
    bot = IntentBot(pipeline)

    first = bot.create_account(99)
    second = bot.create_account(99)

    address = vault.get(99).address
    assert first == f"New account created!\nAddress: {address}"
    assert address in second and "already" in second
    assert len(vault) == 1


def test_wallet_requires_account(pipeline):
    assert IntentBot(pipeline).wallet(1) == NO_ACCOUNT_MESSAGE


def test_wallet_shows_balance_in_ether(chain, pipeline, vault):
    chain.balance = NATIVE_AMOUNT
    bot = IntentBot(pipeline)
    bot.create_account(1)

    text = bot.wallet(1)

    assert vault.get(1).address in text
    assert "ETH Balance: 0.001 ETH" in text


def test_wallet_balance_unavailable(chain, pipeline):
    chain.w3.eth.get_balance.side_effect = requests.ConnectionError("down")
    bot = IntentBot(pipeline)
    bot.create_account(1)

    assert "Balance unavailable" in bot.wallet(1)


def test_text_without_account_is_refused(chain, pipeline):
    reply = MagicMock()
    IntentBot(pipeline).handle_text(1, "send 1 eth to bob", reply)

    reply.assert_called_once_with(NO_ACCOUNT_MESSAGE)
    assert chain.events == []


def test_commands_are_ignored(chain, pipeline):
    reply = MagicMock()
    IntentBot(pipeline).handle_text(1, "/unknown", reply)

    reply.assert_not_called()
    assert chain.events == []


def test_text_runs_pipeline_with_acknowledgement(chain, pipeline):
    chain.preview_result = preview_outputs(NATIVE_AMOUNT, NATIVE_SENTINEL)
    bot = IntentBot(pipeline)
    bot.create_account(1)
    replies = []

    bot.handle_text(1, "send 0.001 eth to bob", replies.append)

    assert replies[0] == PROCESSING_MESSAGE
    assert "Transaction successful" in replies[1]
    assert len(replies) == 2


def test_reply_never_contains_private_key(chain, make_pipeline):
    signer = Account.create()
    vault = AccountVault(key_factory=lambda: signer)
    bot = IntentBot(make_pipeline(accounts=vault))
    replies = [bot.create_account(1)]
    chain.preview_result = ValueError("boom")
    bot.handle_text(1, "x", replies.append)

    key_hex = signer.key.hex().removeprefix("0x")
    assert all(key_hex not in r for r in replies)

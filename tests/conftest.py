"""
Pytest fixtures for the intents-bot tests.

``FakeChain`` stands in for a Web3 instance. It records every chain
interaction in ``events`` so tests can assert on call order.
"""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3 import Web3

from intents_bot._rate_limited_log import reset_rate_limit_cache
from intents_bot.abi import NATIVE_SENTINEL
from intents_bot.accounts import AccountVault
from intents_bot.allowance import AllowanceReconciler
from intents_bot.chain import ChainReader
from intents_bot.formatter import ResultFormatter
from intents_bot.pipeline import IntentPipeline
from intents_bot.submitter import IntentSubmitter
from intents_bot.transactions import TransactionSender

# Constants for testing
COMMAND_ADDRESS = Web3.to_checksum_address("0x1e00ce4800de0d0000640070006dfc5f93dd0ff9")
TOKEN_ADDRESS = Web3.to_checksum_address("0x" + "ab" * 20)
TARGET_ADDRESS = Web3.to_checksum_address("0x" + "12" * 20)
EXPLORER_TX_URL = "https://basescan.org/tx/"
NATIVE_AMOUNT = 1000000000000000  # 0.001 ETH
TOKEN_AMOUNT = 500


def preview_outputs(amount, token, to=TARGET_ADDRESS, balance=10**18):
    """previewCommand output tuple in deployed field order"""
    return (to, amount, balance, token, b"\x01\x02", b"\x03")


class FakeSigner:
    """Signer that wraps the unsigned tx so FakeChain can see what was sent"""

    def __init__(self, address):
        self.address = address

    def sign_transaction(self, tx):
        return SimpleNamespace(raw_transaction=tx, hash=Web3.keccak(text=repr(tx)))


class FakeChain:
    """Scriptable stand-in for a Web3 instance"""

    def __init__(self):
        self.events = []
        self.preview_result = preview_outputs(NATIVE_AMOUNT, NATIVE_SENTINEL)
        self.allowance = 0
        self.balance = 0
        self.send_errors = {}
        self.wait_errors = {}
        self.receipt_status = {"approve": 1, "command": 1}
        self._hash_kinds = {}
        self._tokens = {}

        self.command = MagicMock(name="command_contract")
        self.command.functions.previewCommand.side_effect = self._preview_call
        self.command.functions.command.side_effect = lambda intent: self._tx_call("command", intent)

        self.w3 = MagicMock(name="w3")
        self.w3.eth.contract.side_effect = self._contract
        self.w3.eth.get_transaction_count.return_value = 0
        self.w3.eth.get_balance.side_effect = lambda address: self.balance
        self.w3.eth.send_raw_transaction.side_effect = self._send_raw
        self.w3.eth.wait_for_transaction_receipt.side_effect = self._wait

    # contract bindings

    def _contract(self, address, abi):
        if address == COMMAND_ADDRESS:
            return self.command
        if address not in self._tokens:
            token = MagicMock(name=f"token_{address}")
            token.functions.allowance.side_effect = (
                lambda owner, spender, _address=address: self._allowance_call(_address, owner, spender)
            )
            token.functions.approve.side_effect = (
                lambda spender, amount: self._tx_call("approve", spender, amount)
            )
            self._tokens[address] = token
        return self._tokens[address]

    def _preview_call(self, intent):
        def _call(*args, **kwargs):
            self.events.append(("preview", intent))
            if isinstance(self.preview_result, Exception):
                raise self.preview_result
            return self.preview_result
        call = MagicMock()
        call.call.side_effect = _call
        return call

    def _allowance_call(self, token, owner, spender):
        def _call(*args, **kwargs):
            self.events.append(("allowance", token, owner, spender))
            if isinstance(self.allowance, Exception):
                raise self.allowance
            return self.allowance
        call = MagicMock()
        call.call.side_effect = _call
        return call

    def _tx_call(self, kind, *args):
        call = MagicMock()
        call.build_transaction.side_effect = lambda params: {**params, "kind": kind, "args": args}
        return call

    # transactions

    def _send_raw(self, raw):
        kind = raw["kind"]
        if kind in self.send_errors:
            raise self.send_errors[kind]
        tx_hash = bytes([len(self._hash_kinds) + 1]) * 32
        self._hash_kinds["0x" + tx_hash.hex()] = kind
        self.events.append(("send", kind, raw["value"], raw["args"]))
        return tx_hash

    def _wait(self, tx_hash, timeout=None, poll_latency=None):
        kind = self._hash_kinds[tx_hash]
        self.events.append(("wait", kind))
        if kind in self.wait_errors:
            raise self.wait_errors[kind]
        return {
            "transactionHash": bytes.fromhex(tx_hash[2:]),
            "blockNumber": 12345,
            "blockHash": bytes.fromhex("abcdef1234567890" * 4),
            "status": self.receipt_status[kind],
            "gasUsed": 85000,
            "from": TARGET_ADDRESS,
            "to": COMMAND_ADDRESS,
            "logs": [],
        }

    # helpers for assertions

    def sent(self, kind=None):
        return [e for e in self.events if e[0] == "send" and (kind is None or e[1] == kind)]

    def kinds(self):
        return [e[0] if e[0] in ("preview", "allowance") else f"{e[0]}:{e[1]}" for e in self.events]


@pytest.fixture(autouse=True)
def _clear_rate_limit_cache():
    reset_rate_limit_cache()
    yield
    reset_rate_limit_cache()


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def fake_signer():
    return FakeSigner(Account.create().address)


@pytest.fixture
def vault():
    return AccountVault(key_factory=lambda: FakeSigner(Account.create().address))


@pytest.fixture
def reader(chain):
    return ChainReader(chain.w3, COMMAND_ADDRESS)


@pytest.fixture
def sender(chain):
    return TransactionSender(chain.w3, confirmation_timeout=5, poll_interval=0.01)


@pytest.fixture
def make_pipeline(chain, vault):
    """Factory building an IntentPipeline over ``chain``"""

    def _make(policy="unlimited", accounts=None):
        reader = ChainReader(chain.w3, COMMAND_ADDRESS)
        sender = TransactionSender(chain.w3, confirmation_timeout=5, poll_interval=0.01)
        return IntentPipeline(
            accounts=accounts if accounts is not None else vault,
            reader=reader,
            reconciler=AllowanceReconciler(reader, sender, policy),
            submitter=IntentSubmitter(reader.command_contract, sender),
            formatter=ResultFormatter(EXPLORER_TX_URL),
        )

    return _make


@pytest.fixture
def pipeline(make_pipeline):
    return make_pipeline()

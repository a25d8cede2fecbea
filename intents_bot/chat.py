"""
Transport-agnostic chat command handlers.

Chat adapters deliver ``(user_id, text)`` and a ``reply`` callable; nothing
in this module knows about a particular chat protocol.
"""
import logging
from typing import Callable, Hashable, Optional

from web3 import Web3

from .accounts import AccountStore
from .chain import ChainReader
from .exceptions import IntentBotError
from .pipeline import IntentPipeline

WELCOME_MESSAGE = (
    "Welcome! Use /createaccount to generate a new account, /wallet to see its "
    "balance, then send an intent such as \"swap 0.001 eth for usdc\"."
)
NO_ACCOUNT_MESSAGE = "Please create an account first using /createaccount"
PROCESSING_MESSAGE = "Processing your request..."
BUSY_MESSAGE = "Still processing your previous intent. Please wait for its result before sending another."
GENERIC_ERROR_MESSAGE = "An error occurred while processing your request."

Reply = Callable[[str], None]


class IntentBot:
    """Maps chat commands and free text onto the account vault and pipeline"""

    def __init__(
        self,
        pipeline: IntentPipeline,
        accounts: Optional[AccountStore] = None,
        reader: Optional[ChainReader] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.pipeline = pipeline
        self.accounts = accounts if accounts is not None else pipeline.accounts
        self.reader = reader if reader is not None else pipeline.reader
        self.logger = logger or logging.getLogger(__name__)

    def start(self) -> str:
        return WELCOME_MESSAGE

    def create_account(self, user_id: Hashable) -> str:
        """Create the user's account, or show the existing one"""
        existing = self.accounts.get(user_id)
        if existing is not None:
            return f"You already have an account.\nAddress: {existing.address}"
        account = self.accounts.get_or_create(user_id)
        return f"New account created!\nAddress: {account.address}"

    def wallet(self, user_id: Hashable) -> str:
        """Show the user's address and native balance"""
        account = self.accounts.get(user_id)
        if account is None:
            return NO_ACCOUNT_MESSAGE
        try:
            balance = self.reader.balance_of(account.address)
        except IntentBotError as e:
            return f"Your wallet address: {account.address}\nBalance unavailable: {e}"
        return (
            f"Your wallet address: {account.address}\n"
            f"ETH Balance: {Web3.from_wei(balance, 'ether')} ETH\n\n"
            "Fund this address to pay for intents."
        )

    def handle_text(self, user_id: Hashable, text: str, reply: Reply) -> None:
        """
        Run a free-text intent and send the outcome through ``reply``.

        Commands (text starting with ``/``) are left to the command handlers.
        """
        if text.startswith("/"):
            return
        if self.accounts.get(user_id) is None:
            reply(NO_ACCOUNT_MESSAGE)
            return

        reply(PROCESSING_MESSAGE)
        run = self.pipeline.run(user_id, text)
        self.logger.info(f"Intent for user {user_id!r} finished in state {run.state.value}")
        reply(run.message)

"""
Submission of the command transaction.
"""
import logging
from typing import Optional

from web3.exceptions import TimeExhausted

from .exceptions import (
    SubmissionFailed, ExecutionReverted, ConfirmationTimeout, TransactionError, BroadcastUncertain
)
from .models import TxReceipt
from .transactions import TransactionSender, Signer


class IntentSubmitter:
    """Sends ``command(intent)`` and waits for it to be mined"""

    def __init__(
        self,
        command_contract,
        sender: TransactionSender,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the submitter

        Args:
            command_contract: Web3 contract binding of the command contract
            sender: Transaction sender
            logger: Optional logger instance
        """
        self.command_contract = command_contract
        self.sender = sender
        self.logger = logger or logging.getLogger(__name__)

    def execute(self, intent: str, value: int, signer: Signer) -> TxReceipt:
        """
        Submit the intent and block until its receipt is available.

        Args:
            intent: Intent string, passed to the contract unmodified
            value: Native value in wei (the required amount for native
                payments, zero for token payments)
            signer: Signer for the paying account

        Returns:
            Receipt of the successful command transaction

        Raises:
            SubmissionFailed: If the transaction never reached the network
            ConfirmationTimeout: If it was broadcast but not confirmed in time,
                or the broadcast itself failed in transit
            ExecutionReverted: If it was mined with failure status
        """
        try:
            tx_hash = self.sender.send(self.command_contract.functions.command(intent), signer, value=value)
        except BroadcastUncertain as e:
            raise ConfirmationTimeout(
                f"{e} The transaction may still be mined; check it before retrying.", tx_hash=e.tx_hash
            ) from e
        except TransactionError as e:
            raise SubmissionFailed(str(e)) from e
        except Exception as e:
            self.logger.error(f"Unexpected error sending command: {e}")
            raise SubmissionFailed(f"Transaction failed: {e}") from e

        try:
            receipt = self.sender.wait(tx_hash)
        except TimeExhausted as e:
            self.logger.error(f"Command {tx_hash} not confirmed in time")
            raise ConfirmationTimeout(
                f"Transaction was not confirmed within {self.sender.confirmation_timeout:g} seconds",
                tx_hash=tx_hash
            ) from e
        except Exception as e:
            self.logger.error(f"Waiting for command {tx_hash} failed: {e}")
            raise ConfirmationTimeout(
                f"Could not confirm transaction: {str(e) or type(e).__name__}", tx_hash=tx_hash
            ) from e

        if not receipt.succeeded:
            self.logger.error(f"Command {tx_hash} reverted")
            raise ExecutionReverted("Transaction reverted on-chain", tx_hash=tx_hash)

        return receipt

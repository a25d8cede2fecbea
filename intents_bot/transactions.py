"""
Build, sign, broadcast and confirm contract transactions.

Shared by the allowance reconciler and the intent submitter, which map the
errors raised here onto their own failure kinds.
"""
import logging
from typing import Any, Dict, Optional, Protocol

import requests
from web3 import Web3

from .exceptions import TransactionError, BroadcastUncertain
from .models import TxReceipt, to_hex

# Failures after which the node may still have received the transaction.
# JSON-RPC error responses are definite rejections and are not listed here.
TRANSPORT_ERRORS = (requests.RequestException, TimeoutError, ConnectionError)


class Signer(Protocol):
    """Protocol for transaction signers"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...


def _raw_bytes(signed_tx: Any) -> bytes:
    """Raw transaction bytes across eth-account versions"""
    raw = getattr(signed_tx, "raw_transaction", None)
    if raw is None:
        raw = getattr(signed_tx, "rawTransaction")
    return raw


def _local_hash(signed_tx: Any, raw: bytes) -> str:
    """Transaction hash derived from the signed payload, without asking the node"""
    tx_hash = getattr(signed_tx, "hash", None)
    if tx_hash is None:
        tx_hash = Web3.keccak(raw)
    return to_hex(tx_hash)


class TransactionSender:
    """Sends contract calls from an ephemeral signer and waits for receipts"""

    def __init__(
        self,
        w3: Web3,
        confirmation_timeout: float = 120.0,
        poll_interval: float = 0.5,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the sender

        Args:
            w3: Connected Web3 instance
            confirmation_timeout: Seconds to wait for a receipt
            poll_interval: How often to poll for the receipt, in seconds
            logger: Optional logger instance
        """
        self.w3 = w3
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)

    def send(self, contract_call: Any, signer: Signer, value: int = 0) -> str:
        """
        Build, sign and broadcast a contract function call.

        Gas and fee fields are filled in by web3's transaction builder.

        Args:
            contract_call: Bound contract function (``contract.functions.x(...)``)
            signer: Signer for the sending account
            value: Native value to attach, in wei

        Returns:
            Transaction hash as a 0x-prefixed hex string

        Raises:
            TransactionError: If building or signing fails, or the node
                rejected the broadcast; nothing reached the network
            BroadcastUncertain: If the broadcast failed in transit; carries
                the locally computed hash of a transaction that may have landed
        """
        # 1. Build transaction
        try:
            nonce = self.w3.eth.get_transaction_count(signer.address, "pending")
            tx = contract_call.build_transaction({
                "from": signer.address,
                "nonce": nonce,
                "value": value,
            })
        except Exception as e:
            self.logger.error(f"Failed to build transaction: {e}")
            raise TransactionError(f"Failed to build transaction: {e}") from e

        # 2. Sign transaction
        try:
            signed_tx = signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise TransactionError(f"Failed to sign transaction: {e}") from e

        # 3. Send transaction
        raw = _raw_bytes(signed_tx)
        try:
            tx_hash = self.w3.eth.send_raw_transaction(raw)
        except TRANSPORT_ERRORS as e:
            # The node may have accepted the bytes before the connection dropped
            local_hash = _local_hash(signed_tx, raw)
            self.logger.error(f"Broadcast of {local_hash} failed in transit, outcome unknown: {e}")
            raise BroadcastUncertain(
                f"Lost contact with the node while sending transaction: {str(e) or type(e).__name__}",
                tx_hash=local_hash
            ) from e
        except Exception as e:
            self.logger.error(f"Failed to send transaction: {e}")
            raise TransactionError(f"Failed to send transaction: {e}") from e

        tx_hash_hex = to_hex(tx_hash)
        self.logger.info(f"Transaction sent: {tx_hash_hex}")
        return tx_hash_hex

    def wait(self, tx_hash: str) -> TxReceipt:
        """
        Wait for a transaction receipt.

        Raises:
            web3.exceptions.TimeExhausted: If no receipt arrived in time
        """
        receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=self.confirmation_timeout,
            poll_latency=self.poll_interval
        )
        converted = TxReceipt.from_web3(receipt)
        self.logger.info(f"Transaction {converted.tx_hash} mined with status {converted.status}")
        return converted

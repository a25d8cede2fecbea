"""
Token allowance reconciliation for the command contract.
"""
import logging
from typing import Optional

from web3 import Web3

from .abi import MAX_UINT256, is_native
from .chain import ChainReader
from .exceptions import (
    ApprovalSubmissionFailed, ApprovalNotConfirmed, TransactionError, BroadcastUncertain
)
from .models import TxReceipt
from .transactions import TransactionSender, Signer

APPROVAL_POLICIES = ("unlimited", "exact")


class AllowanceReconciler:
    """
    Makes sure the command contract may pull ``required_amount`` of a token.

    Under the ``unlimited`` policy a missing allowance is topped up to
    ``MAX_UINT256`` once per token, leaving a standing unlimited approval on
    the ephemeral account. The ``exact`` policy approves only the amount each
    run needs, at the cost of an approval transaction per intent.
    """

    def __init__(
        self,
        reader: ChainReader,
        sender: TransactionSender,
        policy: str = "unlimited",
        logger: Optional[logging.Logger] = None
    ):
        if policy not in APPROVAL_POLICIES:
            raise ValueError(f"approval policy must be one of {APPROVAL_POLICIES}, got {policy!r}")
        self.reader = reader
        self.sender = sender
        self.policy = policy
        self.logger = logger or logging.getLogger(__name__)
        if policy == "unlimited":
            self.logger.warning(
                "Approval policy is 'unlimited': token approvals are granted for "
                "MAX_UINT256 and remain in place after each intent"
            )

    def approval_amount(self, required_amount: int) -> int:
        return MAX_UINT256 if self.policy == "unlimited" else required_amount

    def ensure(
        self,
        token: str,
        owner: str,
        spender: str,
        required_amount: int,
        signer: Signer
    ) -> Optional[TxReceipt]:
        """
        Ensure ``spender`` may pull ``required_amount`` of ``token`` from ``owner``.

        Args:
            token: Payment token address, or the native sentinel
            owner: Address of the paying account
            spender: Address of the command contract
            required_amount: Amount the intent needs, in the token's smallest unit
            signer: Signer for ``owner``

        Returns:
            Receipt of the confirmed approval, or None if none was needed

        Raises:
            AllowanceReadFailed: If the current allowance could not be read
            ApprovalSubmissionFailed: If the approval could not be sent
            ApprovalNotConfirmed: If the approval timed out or reverted, or its
                broadcast failed in transit
        """
        if is_native(token):
            self.logger.debug("Native payment, no allowance needed")
            return None

        allowance = self.reader.allowance_of(token, owner, spender)
        if allowance >= required_amount:
            self.logger.debug(f"Allowance {allowance} covers required {required_amount}")
            return None

        amount = self.approval_amount(required_amount)
        self.logger.info(
            f"Allowance {allowance} below required {required_amount}; approving {amount} of {token}"
        )

        try:
            contract = self.reader.token_contract(token)
            approve_call = contract.functions.approve(Web3.to_checksum_address(spender), amount)
            tx_hash = self.sender.send(approve_call, signer)
        except BroadcastUncertain as e:
            raise ApprovalNotConfirmed(
                f"{e} The approval may still be mined.", tx_hash=e.tx_hash
            ) from e
        except TransactionError as e:
            raise ApprovalSubmissionFailed(str(e)) from e
        except Exception as e:
            self.logger.error(f"Unexpected error sending approval: {e}")
            raise ApprovalSubmissionFailed(f"Approval failed: {e}") from e

        try:
            receipt = self.sender.wait(tx_hash)
        except Exception as e:
            self.logger.error(f"Approval {tx_hash} not confirmed: {e}")
            raise ApprovalNotConfirmed(
                f"Approval was not confirmed: {str(e) or type(e).__name__}", tx_hash=tx_hash
            ) from e

        if not receipt.succeeded:
            self.logger.error(f"Approval {tx_hash} reverted")
            raise ApprovalNotConfirmed("Approval transaction reverted", tx_hash=tx_hash)

        return receipt

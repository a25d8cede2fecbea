"""
Exceptions for intents-bot.

Every pipeline stage raises exactly one of the ``IntentPipelineError``
subclasses below. ``transaction_sent`` tells the formatter whether a
transaction reached the network before the failure.
"""
from typing import Optional, Any


class IntentBotError(Exception):
    """Base exception for all intents-bot errors."""
    pass


class ConfigError(IntentBotError):
    """Raised when settings or network configuration are invalid."""
    pass


class IntentPipelineError(IntentBotError):
    """Base exception for a failed pipeline stage."""

    kind = "IntentPipelineError"
    transaction_sent = False

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.message = message
        self.tx_hash = tx_hash
        # Receipt of an approval confirmed earlier in the same run, if any
        self.approval: Optional[Any] = None
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class AccountCreationFailed(IntentPipelineError):
    """Raised when an ephemeral key pair could not be generated."""
    kind = "AccountCreationFailed"


class PreviewFailed(IntentPipelineError):
    """Raised when the command contract rejects or cannot preview an intent."""
    kind = "PreviewFailed"


class AllowanceReadFailed(IntentPipelineError):
    """Raised when the token allowance could not be read."""
    kind = "AllowanceReadFailed"


class ApprovalSubmissionFailed(IntentPipelineError):
    """Raised when the approval transaction could not be signed or broadcast."""
    kind = "ApprovalSubmissionFailed"


class ApprovalNotConfirmed(IntentPipelineError):
    """Raised when the approval transaction timed out or reverted."""
    kind = "ApprovalNotConfirmed"
    transaction_sent = True


class SubmissionFailed(IntentPipelineError):
    """Raised when the command transaction could not be signed or broadcast."""
    kind = "SubmissionFailed"


class ExecutionReverted(IntentPipelineError):
    """Raised when the command transaction was mined with failure status."""
    kind = "ExecutionReverted"
    transaction_sent = True


class ConfirmationTimeout(IntentPipelineError):
    """Raised when the command transaction was broadcast but not confirmed in time."""
    kind = "ConfirmationTimeout"
    transaction_sent = True


class TransactionError(IntentBotError):
    """Raised by the transaction sender when building, signing or broadcasting fails."""
    pass


class BroadcastUncertain(TransactionError):
    """
    Raised when the broadcast call failed in transit.

    The node may or may not have accepted the transaction, so ``tx_hash``
    (computed locally from the signed bytes) is the only way to find out.
    """

    def __init__(self, message: str, tx_hash: str):
        self.tx_hash = tx_hash
        super().__init__(message)

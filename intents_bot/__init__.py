"""
intents-bot - run free-form chat intents against an on-chain command contract.
"""
from .version import __version__
from .abi import NATIVE_SENTINEL, MAX_UINT256
from .accounts import AccountStore, AccountVault
from .allowance import AllowanceReconciler
from .chain import ChainReader, build_web3
from .chat import IntentBot
from .config import BotSettings, NetworkConfig
from .exceptions import (
    IntentBotError, ConfigError, TransactionError, BroadcastUncertain, IntentPipelineError,
    AccountCreationFailed, PreviewFailed, AllowanceReadFailed,
    ApprovalSubmissionFailed, ApprovalNotConfirmed, SubmissionFailed,
    ExecutionReverted, ConfirmationTimeout
)
from .formatter import ResultFormatter
from .models import EphemeralAccount, PreviewResult, TxReceipt
from .pipeline import IntentPipeline, PipelineRun, PipelineState
from .submitter import IntentSubmitter
from .transactions import TransactionSender

__all__ = [
    "__version__",
    "NATIVE_SENTINEL",
    "MAX_UINT256",
    "AccountStore",
    "AccountVault",
    "AllowanceReconciler",
    "ChainReader",
    "build_web3",
    "IntentBot",
    "BotSettings",
    "NetworkConfig",
    "IntentBotError",
    "ConfigError",
    "TransactionError",
    "BroadcastUncertain",
    "IntentPipelineError",
    "AccountCreationFailed",
    "PreviewFailed",
    "AllowanceReadFailed",
    "ApprovalSubmissionFailed",
    "ApprovalNotConfirmed",
    "SubmissionFailed",
    "ExecutionReverted",
    "ConfirmationTimeout",
    "ResultFormatter",
    "EphemeralAccount",
    "PreviewResult",
    "TxReceipt",
    "IntentPipeline",
    "PipelineRun",
    "PipelineState",
    "IntentSubmitter",
    "TransactionSender",
]

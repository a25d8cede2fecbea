"""
IntentPipeline - preview, reconcile, submit and confirm one intent.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, List, Optional

from ._locks import KeyedLock
from .accounts import AccountStore, AccountVault
from .allowance import AllowanceReconciler
from .chain import ChainReader, build_web3
from .config import BotSettings
from .exceptions import (
    IntentPipelineError, PreviewFailed, ApprovalSubmissionFailed, SubmissionFailed,
    AccountCreationFailed
)
from .formatter import ResultFormatter
from .models import PreviewResult, TxReceipt
from .submitter import IntentSubmitter
from .transactions import TransactionSender


class PipelineState(str, Enum):
    IDLE = "Idle"
    PREVIEWING = "Previewing"
    RECONCILING = "Reconciling"
    SUBMITTING = "Submitting"
    CONFIRMED = "Confirmed"
    FAILED = "Failed"


@dataclass
class PipelineRun:
    """Record of a single pipeline run"""
    user_id: Hashable
    intent: str
    state: PipelineState = PipelineState.IDLE
    history: List[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    preview: Optional[PreviewResult] = None
    approval: Optional[TxReceipt] = None
    receipt: Optional[TxReceipt] = None
    error: Optional[IntentPipelineError] = None
    message: str = ""

    def advance(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.CONFIRMED


class IntentPipeline:
    """
    Orchestrates one intent for one user.

    Stages run strictly in order and are never retried: the first failure
    ends the run in ``FAILED``. Runs for the same user are serialized so an
    intent never starts while the previous one is still awaiting
    confirmation; different users proceed concurrently.
    """

    def __init__(
        self,
        accounts: AccountStore,
        reader: ChainReader,
        reconciler: AllowanceReconciler,
        submitter: IntentSubmitter,
        formatter: Optional[ResultFormatter] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.accounts = accounts
        self.reader = reader
        self.reconciler = reconciler
        self.submitter = submitter
        self.formatter = formatter or ResultFormatter()
        self.logger = logger or logging.getLogger(__name__)
        self._user_locks = KeyedLock()

    @classmethod
    def from_settings(
        cls,
        settings: BotSettings,
        accounts: Optional[AccountStore] = None,
        logger: Optional[logging.Logger] = None
    ) -> "IntentPipeline":
        """
        Wire a pipeline against a live RPC endpoint.

        Args:
            settings: Bot settings
            accounts: Account store (defaults to a fresh in-memory AccountVault)
            logger: Optional logger shared by every component
        """
        w3 = build_web3(settings.rpc_url, settings.rpc_timeout)
        reader = ChainReader(w3, settings.command_contract, logger=logger)
        sender = TransactionSender(
            w3,
            confirmation_timeout=settings.confirmation_timeout,
            poll_interval=settings.poll_interval,
            logger=logger
        )
        return cls(
            accounts=accounts if accounts is not None else AccountVault(logger=logger),
            reader=reader,
            reconciler=AllowanceReconciler(reader, sender, settings.approval_policy, logger=logger),
            submitter=IntentSubmitter(reader.command_contract, sender, logger=logger),
            formatter=ResultFormatter(settings.explorer_tx_url),
            logger=logger
        )

    def is_busy(self, user_id: Hashable) -> bool:
        """Return True if a run for ``user_id`` is in progress"""
        return self._user_locks.locked(user_id)

    def run(self, user_id: Hashable, intent: str) -> PipelineRun:
        """
        Execute ``intent`` on behalf of ``user_id``.

        Never raises for stage failures: the returned run carries the final
        state, the error (if any) and the rendered reply.
        """
        with self._user_locks.hold(user_id):
            run = PipelineRun(user_id=user_id, intent=intent)
            try:
                self._execute(run)
            except IntentPipelineError as e:
                e.approval = run.approval
                run.error = e
                run.advance(PipelineState.FAILED)
                self.logger.info(f"Intent for user {user_id!r} failed: {e}")
                run.message = self.formatter.render(run.preview, e, run.approval)
            else:
                run.message = self.formatter.render(run.preview, run.receipt, run.approval)
            return run

    def _execute(self, run: PipelineRun) -> None:
        try:
            account = self.accounts.get_or_create(run.user_id)
        except AccountCreationFailed:
            raise
        except Exception as e:
            raise AccountCreationFailed(f"Could not resolve account: {e}") from e

        self._transition(run, PipelineState.PREVIEWING)
        try:
            preview = self.reader.preview(run.intent)
        except IntentPipelineError:
            raise
        except Exception as e:
            raise PreviewFailed(str(e)) from e
        run.preview = preview

        self._transition(run, PipelineState.RECONCILING)
        try:
            run.approval = self.reconciler.ensure(
                preview.token,
                account.address,
                self.reader.command_address,
                preview.amount,
                account.signer
            )
        except IntentPipelineError:
            raise
        except Exception as e:
            raise ApprovalSubmissionFailed(str(e)) from e

        # Amounts come only from the preview captured above
        value = preview.amount if preview.is_native else 0

        self._transition(run, PipelineState.SUBMITTING)
        try:
            run.receipt = self.submitter.execute(run.intent, value, account.signer)
        except IntentPipelineError:
            raise
        except Exception as e:
            raise SubmissionFailed(str(e)) from e

        self._transition(run, PipelineState.CONFIRMED)

    def _transition(self, run: PipelineRun, state: PipelineState) -> None:
        self.logger.info(f"Intent for user {run.user_id!r}: {run.state.value} -> {state.value}")
        run.advance(state)

"""
Rendering of pipeline outcomes into chat replies.
"""
import json
from typing import Any, Optional, Union

from .exceptions import (
    IntentPipelineError, ApprovalNotConfirmed, ExecutionReverted, ConfirmationTimeout
)
from .models import PreviewResult, TxReceipt, to_hex

DEFAULT_EXPLORER_TX_URL = "https://basescan.org/tx/"

NOTHING_SENT = "No transaction was sent. Nothing left your account."


def stringify_numbers(obj: Any) -> Any:
    """
    Recursively convert integers to decimal strings and bytes to hex.

    Large on-chain integers must survive JSON rendering without precision loss.
    """
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        return str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return to_hex(obj)
    if isinstance(obj, (list, tuple)):
        return [stringify_numbers(item) for item in obj]
    if isinstance(obj, dict):
        return {key: stringify_numbers(value) for key, value in obj.items()}
    return obj


class ResultFormatter:
    """Turns a preview plus a receipt or pipeline error into user-facing text"""

    def __init__(self, explorer_tx_url: str = DEFAULT_EXPLORER_TX_URL):
        self.explorer_tx_url = explorer_tx_url

    def tx_url(self, tx_hash: Union[str, bytes]) -> str:
        """Block-explorer link for a transaction hash (bytes or hex, with or without 0x)"""
        return f"{self.explorer_tx_url}{to_hex(tx_hash)}"

    def render_preview(self, preview: PreviewResult) -> str:
        data = preview.model_dump(exclude={"raw_outputs"})
        return json.dumps(stringify_numbers(data))

    def render(
        self,
        preview: Optional[PreviewResult],
        outcome: Union[TxReceipt, IntentPipelineError],
        approval: Optional[TxReceipt] = None
    ) -> str:
        """
        Render the outcome of one pipeline run.

        Args:
            preview: Preview captured at the start of the run (None if it failed)
            outcome: Successful command receipt, or the error that ended the run
            approval: Receipt of an approval confirmed during the run, if any

        Returns:
            Reply text for the user
        """
        if isinstance(outcome, IntentPipelineError):
            return self._render_failure(preview, outcome, approval or outcome.approval)

        lines = []
        if preview is not None:
            lines.append(f"Preview: {self.render_preview(preview)}")
        if approval is not None:
            lines.append(f"Token approval confirmed: {approval.tx_hash}")
        lines.append(f"Transaction successful: {outcome.tx_hash}")
        lines.append(f"View on explorer: {self.tx_url(outcome.tx_hash)}")
        return "\n".join(lines)

    def _render_failure(
        self,
        preview: Optional[PreviewResult],
        error: IntentPipelineError,
        approval: Optional[TxReceipt]
    ) -> str:
        lines = [f"Error ({error.kind}): {error.message}"]

        if isinstance(error, ApprovalNotConfirmed):
            lines.append(
                "A token approval transaction was sent but could not be confirmed. "
                "The intent was not executed and no payment was made; network fees may have been spent."
            )
        elif isinstance(error, ExecutionReverted):
            lines.append(
                "The transaction was sent but reverted on-chain. Its transfers were undone; "
                "only network fees left your account."
            )
        elif isinstance(error, ConfirmationTimeout):
            lines.append(
                "The transaction was sent but could not be confirmed in time. It may still "
                "complete; check the explorer before trying again."
            )
        else:
            lines.append(NOTHING_SENT if approval is None else
                         "The intent transaction was not sent. No payment was made.")

        if approval is not None:
            lines.append(
                f"Note: the token approval did complete ({approval.tx_hash}) and remains in place."
            )
        if preview is not None:
            lines.append(f"Preview: {self.render_preview(preview)}")
        if error.tx_hash:
            lines.append(f"View on explorer: {self.tx_url(error.tx_hash)}")
        return "\n".join(lines)

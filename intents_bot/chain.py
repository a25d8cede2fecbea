"""
Read-only queries against the command contract and token contracts.
"""
import logging
from typing import Any, Optional

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError

from ._rate_limited_log import rate_limited_log
from .abi import COMMAND_ABI, ERC20_ABI
from .exceptions import PreviewFailed, AllowanceReadFailed, IntentBotError
from .models import PreviewResult


def build_web3(rpc_url: str, timeout: float = 30.0) -> Web3:
    """
    Create a Web3 instance whose every RPC request has an explicit timeout.

    Args:
        rpc_url: JSON-RPC endpoint URL
        timeout: Per-request timeout in seconds
    """
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


def _describe(error: Exception) -> str:
    """Best human-readable message for a web3 / transport error"""
    if isinstance(error, ContractLogicError) and getattr(error, "message", None):
        return str(error.message)
    return str(error) or type(error).__name__


class ChainReader:
    """
    Read-only view of the chain for the intent pipeline.

    Results are never cached: every call reflects chain state at call time.
    """

    def __init__(
        self,
        w3: Web3,
        command_contract: str,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the reader

        Args:
            w3: Connected Web3 instance (see ``build_web3``)
            command_contract: Address of the command contract
            logger: Optional logger instance
        """
        self.w3 = w3
        self.command_address = Web3.to_checksum_address(command_contract)
        self.command_contract = w3.eth.contract(address=self.command_address, abi=COMMAND_ABI)
        self.logger = logger or logging.getLogger(__name__)

    def _note_transport_error(self, error: Exception) -> None:
        if isinstance(error, (requests.ConnectionError, requests.Timeout)):
            rate_limited_log(f"RPC endpoint unreachable: {error}", "error", self.logger)

    def preview(self, intent: str) -> PreviewResult:
        """
        Simulate an intent with the command contract's ``previewCommand``.

        Args:
            intent: Free-form intent string, passed through unmodified

        Returns:
            Typed preview of the intent's cost

        Raises:
            PreviewFailed: If the call reverts, fails, or returns malformed data
        """
        self.logger.debug(f"Previewing intent ({len(intent)} chars)")
        try:
            outputs = self.command_contract.functions.previewCommand(intent).call()
        except Exception as e:
            self._note_transport_error(e)
            self.logger.error(f"previewCommand failed: {e}")
            raise PreviewFailed(_describe(e)) from e

        try:
            preview = PreviewResult.from_outputs(outputs)
        except (ValueError, TypeError) as e:
            self.logger.error(f"Malformed previewCommand output: {e}")
            raise PreviewFailed(f"Malformed preview output: {e}") from e

        self.logger.debug(f"Preview: amount={preview.amount} token={preview.token}")
        return preview

    def allowance_of(self, token: str, owner: str, spender: str) -> int:
        """
        Read the ERC-20 allowance ``owner`` has granted ``spender``.

        Raises:
            AllowanceReadFailed: If the token call fails
        """
        try:
            contract = self.token_contract(token)
            allowance = contract.functions.allowance(
                Web3.to_checksum_address(owner),
                Web3.to_checksum_address(spender)
            ).call()
        except Exception as e:
            self._note_transport_error(e)
            self.logger.error(f"allowance() read failed for token {token}: {e}")
            raise AllowanceReadFailed(_describe(e)) from e
        self.logger.debug(f"Allowance of {owner} for {spender} on {token}: {allowance}")
        return int(allowance)

    def balance_of(self, address: str) -> int:
        """
        Native-currency balance of ``address`` in wei.

        Raises:
            IntentBotError: If the balance could not be read
        """
        try:
            return int(self.w3.eth.get_balance(Web3.to_checksum_address(address)))
        except Exception as e:
            self._note_transport_error(e)
            self.logger.error(f"Balance read failed for {address}: {e}")
            raise IntentBotError(f"Could not read balance: {_describe(e)}") from e

    def token_contract(self, token: str) -> Any:
        """ERC-20 contract binding for ``token``"""
        return self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)

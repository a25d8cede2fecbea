"""
Data models for intents-bot.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Tuple

from eth_account.signers.local import LocalAccount
from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3

from .abi import PREVIEW_FIELDS, is_native


@dataclass(frozen=True)
class EphemeralAccount:
    """
    A per-user signing account held only in process memory.

    The signer carries the private key and is excluded from ``repr`` so the
    key material cannot leak into logs.
    """
    address: str
    signer: LocalAccount = field(repr=False, compare=False)


class PreviewResult(BaseModel):
    """Typed output of the command contract's ``previewCommand`` call"""
    model_config = ConfigDict(frozen=True)

    to: str
    amount: int = Field(..., ge=0)
    balance: int = Field(..., ge=0)
    token: str
    call_data: bytes = b""
    execute_call_data: bytes = b""
    raw_outputs: Tuple[Any, ...] = ()

    @field_validator("to", "token")
    @classmethod
    def _checksum(cls, value: str) -> str:
        if not Web3.is_address(value):
            raise ValueError(f"not an address: {value!r}")
        return Web3.to_checksum_address(value)

    @classmethod
    def from_outputs(cls, outputs: Any) -> "PreviewResult":
        """
        Decode the positional ``previewCommand`` tuple into named fields.

        Args:
            outputs: Sequence returned by the contract call

        Returns:
            Validated PreviewResult

        Raises:
            ValueError: If the tuple has the wrong arity or field types
        """
        values = tuple(outputs)
        if len(values) != len(PREVIEW_FIELDS):
            raise ValueError(
                f"previewCommand returned {len(values)} values, expected {len(PREVIEW_FIELDS)}"
            )
        data = dict(zip(PREVIEW_FIELDS, values))
        return cls(**data, raw_outputs=values)

    @property
    def required_amount(self) -> int:
        return self.amount

    @property
    def payment_token(self) -> str:
        return self.token

    @property
    def is_native(self) -> bool:
        return is_native(self.token)


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    from_address: Optional[str] = Field(None, alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_web3(cls, web3_receipt: Any) -> "TxReceipt":
        """
        Convert a Web3 receipt to our TxReceipt model

        Args:
            web3_receipt: The Web3 transaction receipt (AttributeDict or dict)

        Returns:
            Our TxReceipt model
        """
        receipt_dict = dict(web3_receipt)

        # Convert bytes to hex strings
        for key, value in list(receipt_dict.items()):
            if isinstance(value, bytes):
                receipt_dict[key] = to_hex(value)

        receipt_dict["logs"] = [dict(log) for log in receipt_dict.get("logs") or []]
        return cls.model_validate(receipt_dict)


def to_hex(value: Any) -> str:
    """Render bytes or a hex string as a 0x-prefixed hex string."""
    if isinstance(value, (bytes, bytearray)):
        hex_str = bytes(value).hex()
    else:
        hex_str = str(value)
    if hex_str.startswith("0x"):
        return hex_str
    return "0x" + hex_str

"""
Network and bot configuration for intents-bot.

Network data ships as ``networks.json`` inside the package. Runtime settings
come from the environment through ``BotSettings.from_env``.
"""
import json
import os
import urllib.parse
import importlib.resources
from typing import Dict, Any, Optional, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from web3 import Web3

from .exceptions import ConfigError


class NetworkConfig:
    """Lookup helpers over the packaged network table"""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load the network table, caching it after the first read.

        Returns:
            Mapping of network name to its configuration
        """
        if cls._networks_cache is None:
            resource = importlib.resources.files("intents_bot").joinpath("networks.json")
            cls._networks_cache = json.loads(resource.read_text(encoding="utf-8"))
        return cls._networks_cache

    @classmethod
    def get_network(cls, name: str) -> Dict[str, Any]:
        """
        Get a network configuration by name.

        Raises:
            ConfigError: If the network is unknown
        """
        networks = cls.load_networks()
        if name not in networks:
            available = ", ".join(sorted(networks))
            raise ConfigError(f"Unknown network '{name}'. Available networks: {available}")
        return networks[name]

    @classmethod
    def get_rpc_url(cls, name: str, override: Optional[str] = None) -> str:
        """
        Resolve the RPC URL: explicit override, then ``<NETWORK>_RPC_URL``,
        then the packaged default.
        """
        if override:
            return override
        env_key = f"{name.upper().replace('-', '_')}_RPC_URL"
        env_value = os.environ.get(env_key)
        if env_value:
            return env_value
        return cls.get_network(name)["rpc"]

    @classmethod
    def get_chain_id(cls, name: str) -> int:
        return int(cls.get_network(name)["chainId"])

    @classmethod
    def get_command_contract(cls, name: str) -> str:
        return cls.get_network(name)["commandContract"]

    @classmethod
    def get_explorer_tx_url(cls, name: str) -> str:
        return cls.get_network(name)["explorerTxUrl"]


def validate_rpc_url(url: str) -> str:
    """
    Reject non-https RPC URLs unless they point at localhost.

    Raises:
        ValueError: If the scheme is not allowed
    """
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1")
    if parsed.scheme != "https" and not (is_local and parsed.scheme == "http"):
        raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")
    return url


class BotSettings(BaseModel):
    """Runtime settings for the bot and the intent pipeline"""

    network: str = "base"
    rpc_url: str
    command_contract: str
    chain_id: int
    explorer_tx_url: str
    bot_token: Optional[str] = Field(default=None, repr=False)
    rpc_timeout: float = Field(default=30.0, gt=0)
    confirmation_timeout: float = Field(default=120.0, gt=0)
    poll_interval: float = Field(default=0.5, gt=0)
    approval_policy: Literal["unlimited", "exact"] = "unlimited"

    @field_validator("rpc_url")
    @classmethod
    def _check_rpc_url(cls, value: str) -> str:
        return validate_rpc_url(value)

    @field_validator("command_contract")
    @classmethod
    def _check_contract(cls, value: str) -> str:
        if not Web3.is_address(value):
            raise ValueError(f"command_contract is not an address: {value!r}")
        return Web3.to_checksum_address(value)

    @classmethod
    def for_network(cls, network: str = "base", **overrides: Any) -> "BotSettings":
        """
        Build settings from the packaged network table plus overrides.

        Raises:
            ConfigError: If the network is unknown or a value is invalid
        """
        values: Dict[str, Any] = {
            "network": network,
            "rpc_url": NetworkConfig.get_rpc_url(network, overrides.pop("rpc_url", None)),
            "command_contract": NetworkConfig.get_command_contract(network),
            "chain_id": NetworkConfig.get_chain_id(network),
            "explorer_tx_url": NetworkConfig.get_explorer_tx_url(network),
        }
        values.update({k: v for k, v in overrides.items() if v not in (None, "")})
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "BotSettings":
        """
        Build settings from environment variables.

        Reads BOT_TOKEN, RPC_URL, INTENT_NETWORK, COMMAND_CONTRACT_ADDRESS,
        RPC_TIMEOUT, CONFIRMATION_TIMEOUT, POLL_INTERVAL and APPROVAL_POLICY.
        """
        env = os.environ if environ is None else environ
        return cls.for_network(
            env.get("INTENT_NETWORK", "base"),
            rpc_url=env.get("RPC_URL"),
            bot_token=env.get("BOT_TOKEN"),
            command_contract=env.get("COMMAND_CONTRACT_ADDRESS"),
            rpc_timeout=env.get("RPC_TIMEOUT"),
            confirmation_timeout=env.get("CONFIRMATION_TIMEOUT"),
            poll_interval=env.get("POLL_INTERVAL"),
            approval_policy=env.get("APPROVAL_POLICY"),
        )

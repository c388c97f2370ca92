"""Runtime configuration for the launchpad core.

Values come from environment variables with defaults that target the public
test deployments (Polygon Amoy and Solana devnet).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any

from launchpad.shared.network import RetryConfig, TimeoutConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkDescriptor:
    chain_id: str
    name: str
    currency_name: str
    currency_symbol: str
    decimals: int
    rpc_url: str
    explorer_url: str

    @property
    def hex_chain_id(self) -> str:
        return hex(int(self.chain_id))

    def matches(self, network_id: Any) -> bool:
        if network_id is None:
            return False
        if isinstance(network_id, int):
            return self.chain_id.isdigit() and network_id == int(self.chain_id)

        value = str(network_id).strip().lower()
        if self.chain_id.isdigit():
            try:
                return int(value, 16 if value.startswith("0x") else 10) == int(self.chain_id)
            except ValueError:
                return False
        return value == self.chain_id.lower()

    def to_registration_params(self) -> dict[str, Any]:
        return {
            "chainId": self.hex_chain_id,
            "chainName": self.name,
            "nativeCurrency": {
                "name": self.currency_name,
                "symbol": self.currency_symbol,
                "decimals": self.decimals,
            },
            "rpcUrls": [self.rpc_url],
            "blockExplorerUrls": [self.explorer_url],
        }


POLYGON_AMOY = NetworkDescriptor(
    chain_id="80002",
    name="Polygon Amoy",
    currency_name="MATIC",
    currency_symbol="MATIC",
    decimals=18,
    rpc_url="https://rpc-amoy.polygon.technology",
    explorer_url="https://www.oklink.com/amoy",
)

SOLANA_DEVNET = NetworkDescriptor(
    chain_id="devnet",
    name="Solana Devnet",
    currency_name="SOL",
    currency_symbol="SOL",
    decimals=9,
    rpc_url="https://api.devnet.solana.com",
    explorer_url="https://explorer.solana.com/?cluster=devnet",
)

DEFAULT_EVM_LAUNCHPAD_ADDRESS = "0xC9ad2061367FefbeeB60cB455021942C9f8FBDcD"
DEFAULT_SOLANA_PROGRAM_ID = "DWwZ2Hc5Pzh4Kjo7ns8pVrqvLgKo622DydEFZ8XHz5iy"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


@dataclass
class LaunchpadConfig:
    evm_network: NetworkDescriptor = POLYGON_AMOY
    evm_launchpad_address: str = DEFAULT_EVM_LAUNCHPAD_ADDRESS
    solana_network: NetworkDescriptor = SOLANA_DEVNET
    solana_program_id: str = DEFAULT_SOLANA_PROGRAM_ID
    token_decimals: int = 18
    solana_token_decimals: int = 9
    confirmation_timeout: float = 120.0
    poll_interval: float = 2.0
    timeout_config: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry_config: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_environment(cls) -> "LaunchpadConfig":
        evm_network = POLYGON_AMOY
        evm_rpc = os.getenv("LAUNCHPAD_EVM_RPC_URL")
        if evm_rpc:
            evm_network = replace(POLYGON_AMOY, rpc_url=evm_rpc)

        solana_network = SOLANA_DEVNET
        solana_rpc = os.getenv("LAUNCHPAD_SOLANA_RPC_URL")
        if solana_rpc:
            solana_network = replace(SOLANA_DEVNET, rpc_url=solana_rpc)

        return cls(
            evm_network=evm_network,
            evm_launchpad_address=os.getenv(
                "LAUNCHPAD_EVM_CONTRACT", DEFAULT_EVM_LAUNCHPAD_ADDRESS
            ),
            solana_network=solana_network,
            solana_program_id=os.getenv(
                "LAUNCHPAD_SOLANA_PROGRAM_ID", DEFAULT_SOLANA_PROGRAM_ID
            ),
            token_decimals=_env_int("LAUNCHPAD_TOKEN_DECIMALS", 18),
            solana_token_decimals=_env_int("LAUNCHPAD_SOLANA_TOKEN_DECIMALS", 9),
            confirmation_timeout=_env_float("LAUNCHPAD_CONFIRMATION_TIMEOUT", 120.0),
            poll_interval=_env_float("LAUNCHPAD_POLL_INTERVAL", 2.0),
        )

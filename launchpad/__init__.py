"""Launchpad core: token sale pools on EVM chains and Solana.

This package is organized into feature-based modules:
- features.pools: pool drafts, registry cache and lifecycle service
- ledger: EVM and Solana ledger gateways
- session: wallet connection and network management
- shared: configuration, logging, RPC retries, validation, error classification
"""

from launchpad.features.pools import PoolDraft, PoolRegistry, PoolService
from launchpad.ledger import EvmGateway, LedgerGateway, PoolRecord, SolanaGateway
from launchpad.providers import Eip1193Provider
from launchpad.session import (
    ConnectionState,
    ProviderRpcError,
    SessionManager,
    WalletProvider,
    WalletSession,
)
from launchpad.shared import (
    ErrorKind,
    LaunchpadConfig,
    LaunchpadError,
    NetworkError,
    RpcCaller,
    classify_failure,
)
from launchpad.transaction import TransactionAttempt, TransactionKind, TransactionState

__version__ = "0.1.0"
__all__ = [
    "PoolDraft",
    "PoolRegistry",
    "PoolService",
    "EvmGateway",
    "LedgerGateway",
    "PoolRecord",
    "SolanaGateway",
    "Eip1193Provider",
    "ConnectionState",
    "ProviderRpcError",
    "SessionManager",
    "WalletProvider",
    "WalletSession",
    "ErrorKind",
    "LaunchpadConfig",
    "LaunchpadError",
    "NetworkError",
    "RpcCaller",
    "classify_failure",
    "TransactionAttempt",
    "TransactionKind",
    "TransactionState",
]

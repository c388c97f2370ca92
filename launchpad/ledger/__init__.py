"""Ledger gateways: one per supported chain, behind a common interface."""

from launchpad.ledger.base import BaseGateway, LedgerGateway, PoolRecord
from launchpad.ledger.evm import EvmGateway
from launchpad.ledger.solana import SolanaGateway

__all__ = ["BaseGateway", "LedgerGateway", "PoolRecord", "EvmGateway", "SolanaGateway"]

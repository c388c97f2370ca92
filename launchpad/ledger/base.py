"""Ledger gateway capability interface shared by every supported ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from launchpad.shared.logging import log_with_context
from launchpad.shared.outcomes import classify_failure
from launchpad.shared.validation import LedgerLimits, ValidationResult
from launchpad.transaction import Operation, TransactionAttempt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolRecord:
    """Snapshot of one pool as last read from the ledger.

    ``id`` is the ledger's own index on EVM. Solana has no pool counter, so
    there ``id`` is the position in the address-sorted account list of the
    latest listing: a pool created with a lower address shifts the ids of
    the pools after it, and ``pool_address`` is the stable key.
    """

    id: int
    sale_asset_ref: str
    window_start: int
    window_end: int
    total_supply: Decimal
    unit_price: Decimal
    min_contribution: Decimal
    max_contribution: Decimal
    total_raised: Decimal
    finalized: bool
    pool_address: str | None = None
    vault_address: str | None = None

    def is_open(self, at: float) -> bool:
        return not self.finalized and self.window_start <= at <= self.window_end


class Signer(Protocol):
    def require_account(self) -> str: ...
    def sign_and_send(self, transaction: Any) -> str: ...


class LedgerGateway(Protocol):
    requires_allowance: bool
    amount_limits: LedgerLimits

    def validate_address(self, value: str) -> ValidationResult: ...
    def read_pool_count(self) -> int: ...
    def read_pool(self, pool_id: int) -> PoolRecord: ...
    def submit(self, operation: Operation, signer: Signer) -> TransactionAttempt: ...


class BaseGateway:
    """Shared submit flow: build, hand to the wallet, wait for inclusion.

    Subclasses provide ``build_transaction`` and ``wait_for_confirmation``.
    Failures never escape ``submit``; they end up on the returned attempt.
    """

    requires_allowance = False

    def build_transaction(self, operation: Operation, account: str) -> Any:
        raise NotImplementedError

    def wait_for_confirmation(self, tx_hash: str) -> None:
        raise NotImplementedError

    def submit(self, operation: Operation, signer: Signer) -> TransactionAttempt:
        attempt = TransactionAttempt(kind=operation.kind)
        try:
            account = signer.require_account()
            transaction = self.build_transaction(operation, account)
            tx_hash = signer.sign_and_send(transaction)
            attempt.mark_sent(str(tx_hash))
            log_with_context(
                logger,
                logging.INFO,
                "Transaction sent",
                kind=operation.kind.value,
                tx_hash=str(tx_hash),
            )
            self.wait_for_confirmation(str(tx_hash))
        except Exception as e:
            attempt.fail(classify_failure(e))
            return attempt

        attempt.confirm()
        return attempt

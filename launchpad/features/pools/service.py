"""Pool lifecycle business logic: create, contribute, finalize, claim."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Protocol

from launchpad.features.pools.registry import PoolRegistry
from launchpad.features.pools.validators import PoolDraft, PoolDraftValidator, ValidatedPool
from launchpad.ledger.base import LedgerGateway, PoolRecord
from launchpad.shared.outcomes import LaunchpadError, classify_failure
from launchpad.shared.validation import AmountValidator
from launchpad.transaction import (
    ApproveAllowance,
    ClaimTokens,
    Contribute,
    CreatePool,
    FinalizePool,
    TransactionAttempt,
)

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    """Signing authority the service submits through."""

    def require_account(self) -> str: ...
    def sign_and_send(self, transaction: Any) -> str: ...


class CreationState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    APPROVING = "approving"
    CREATING = "creating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PoolCreation:
    state: CreationState = CreationState.IDLE
    attempts: list[TransactionAttempt] = field(default_factory=list)
    error: LaunchpadError | None = None

    def _fail(self, error: LaunchpadError) -> "PoolCreation":
        self.state = CreationState.FAILED
        self.error = error
        return self


class PoolService:
    """Runs pool operations against one ledger.

    Inputs are checked locally before anything is sent, so a request the
    ledger would certainly refuse never reaches the wallet. Ledger and wallet
    failures come back on the returned attempt instead of being raised.
    """

    def __init__(
        self,
        session: SessionProtocol,
        gateway: LedgerGateway,
        registry: PoolRegistry | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.session = session
        self.gateway = gateway
        self.registry = registry or PoolRegistry(gateway)
        self.clock = clock
        self.validator = PoolDraftValidator(gateway.validate_address, gateway.amount_limits)
        self.draft = PoolDraft()
        self.creation = PoolCreation()

    # Creation -----------------------------------------------------------------

    def create_pool(self, draft: PoolDraft | None = None) -> PoolCreation:
        """Validate the draft, grant the allowance if needed, then create.

        Raises ``LaunchpadError`` (validation) when the draft is rejected
        locally. The draft, including one passed in, is cleared in place only
        once creation is confirmed.
        """
        if draft is not None:
            self.draft = draft

        creation = PoolCreation(state=CreationState.VALIDATING)
        self.creation = creation

        try:
            self.session.require_account()
        except LaunchpadError as e:
            creation._fail(e)
            raise

        result = self.validator.validate(self.draft)
        if not result.is_valid:
            error = LaunchpadError.validation(result.error_message)
            creation._fail(error)
            logger.info("Pool draft rejected: %s", result.error_message)
            raise error

        pool: ValidatedPool = result.normalized_value

        if self.gateway.requires_allowance:
            creation.state = CreationState.APPROVING
            approval = self.gateway.submit(
                ApproveAllowance(asset_ref=pool.sale_asset_ref, amount=pool.total_supply),
                self.session,
            )
            creation.attempts.append(approval)
            if not approval.is_confirmed:
                return creation._fail(approval.error)

        creation.state = CreationState.CREATING
        attempt = self.gateway.submit(
            CreatePool(
                asset_ref=pool.sale_asset_ref,
                window_start=pool.window_start,
                window_end=pool.window_end,
                total_supply=pool.total_supply,
                unit_price=pool.unit_price,
                min_contribution=pool.min_contribution,
                max_contribution=pool.max_contribution,
            ),
            self.session,
        )
        creation.attempts.append(attempt)
        if not attempt.is_confirmed:
            return creation._fail(attempt.error)

        creation.state = CreationState.DONE
        self.draft.clear()
        logger.info("Pool created for %s", pool.sale_asset_ref)
        self._refresh_after_write()
        return creation

    # Participation ------------------------------------------------------------

    def contribute(self, pool_id: int, amount: str) -> TransactionAttempt:
        self.session.require_account()

        parsed = AmountValidator.parse_human_amount(amount, allow_zero=False)
        if not parsed.is_valid:
            raise LaunchpadError.validation(parsed.error_message)
        value: Decimal = parsed.normalized_value

        limits = self.gateway.amount_limits
        fits = AmountValidator.validate_base_units(
            value, limits.native_decimals, limits.max_base_units
        )
        if not fits.is_valid:
            raise LaunchpadError.validation(fits.error_message)

        pool = self._lookup(pool_id)
        if pool.finalized:
            raise LaunchpadError.validation("Pool is already finalized")
        if value < pool.min_contribution:
            raise LaunchpadError.validation(
                f"Contribution is below minContribution ({pool.min_contribution})"
            )
        if value > pool.max_contribution:
            raise LaunchpadError.validation(
                f"Contribution exceeds maxContribution ({pool.max_contribution})"
            )

        now = self.clock()
        if not pool.is_open(now):
            raise LaunchpadError.validation(
                "Pool has not started yet" if now < pool.window_start else "Pool has ended"
            )

        return self._submit(Contribute(pool_id=pool_id, amount=value))

    def finalize_pool(self, pool_id: int) -> TransactionAttempt:
        self.session.require_account()

        cached = self.registry.get(pool_id)
        if cached is not None and cached.finalized:
            raise LaunchpadError.validation("Pool is already finalized")

        return self._submit(FinalizePool(pool_id=pool_id))

    def claim_tokens(self, pool_id: int) -> TransactionAttempt:
        self.session.require_account()

        pool = self._lookup(pool_id)
        if not pool.finalized:
            raise LaunchpadError.validation("Pool is not finalized yet")

        return self._submit(ClaimTokens(pool_id=pool_id))

    # Helpers ------------------------------------------------------------------

    def _lookup(self, pool_id: int) -> PoolRecord:
        pool = self.registry.get(pool_id)
        if pool is not None:
            return pool
        try:
            return self.gateway.read_pool(pool_id)
        except Exception as e:
            raise classify_failure(e) from e

    def _submit(self, operation) -> TransactionAttempt:
        attempt = self.gateway.submit(operation, self.session)
        if attempt.is_confirmed:
            self._refresh_after_write()
        return attempt

    def _refresh_after_write(self) -> None:
        try:
            self.registry.refresh()
        except LaunchpadError as e:
            logger.warning("Pool list refresh after write failed: %s", e.message)

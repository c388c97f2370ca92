from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union

from launchpad.shared.outcomes import LaunchpadError, log_level_for

logger = logging.getLogger(__name__)


class TransactionKind(Enum):
    APPROVE = "approve"
    CREATE_POOL = "create_pool"
    CONTRIBUTE = "contribute"
    FINALIZE = "finalize"
    CLAIM = "claim"


class TransactionState(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class ApproveAllowance:
    kind: ClassVar[TransactionKind] = TransactionKind.APPROVE

    asset_ref: str
    amount: Decimal


@dataclass(frozen=True)
class CreatePool:
    kind: ClassVar[TransactionKind] = TransactionKind.CREATE_POOL

    asset_ref: str
    window_start: int
    window_end: int
    total_supply: Decimal
    unit_price: Decimal
    min_contribution: Decimal
    max_contribution: Decimal


@dataclass(frozen=True)
class Contribute:
    kind: ClassVar[TransactionKind] = TransactionKind.CONTRIBUTE

    pool_id: int
    amount: Decimal


@dataclass(frozen=True)
class FinalizePool:
    kind: ClassVar[TransactionKind] = TransactionKind.FINALIZE

    pool_id: int


@dataclass(frozen=True)
class ClaimTokens:
    kind: ClassVar[TransactionKind] = TransactionKind.CLAIM

    pool_id: int


Operation = Union[ApproveAllowance, CreatePool, Contribute, FinalizePool, ClaimTokens]


@dataclass
class TransactionAttempt:
    """One submitted write operation. Terminal once confirmed or failed."""

    kind: TransactionKind
    state: TransactionState = TransactionState.PENDING
    tx_hash: str | None = None
    error: LaunchpadError | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state != TransactionState.PENDING

    @property
    def is_confirmed(self) -> bool:
        return self.state == TransactionState.CONFIRMED

    def _require_pending(self) -> None:
        if self.is_terminal:
            raise ValueError(
                f"{self.kind.value} attempt is already {self.state.value}"
            )

    def mark_sent(self, tx_hash: str) -> None:
        self._require_pending()
        self.tx_hash = tx_hash

    def confirm(self) -> None:
        self._require_pending()
        self.state = TransactionState.CONFIRMED
        self.completed_at = datetime.now(timezone.utc)
        logger.info("%s transaction confirmed: %s", self.kind.value, self.tx_hash)

    def fail(self, error: LaunchpadError) -> None:
        self._require_pending()
        self.state = TransactionState.FAILED
        self.error = error
        self.completed_at = datetime.now(timezone.utc)
        logger.log(
            log_level_for(error.kind),
            "%s transaction failed (%s): %s",
            self.kind.value,
            error.kind.value,
            error.message,
        )

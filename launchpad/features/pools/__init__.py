"""Pool lifecycle feature."""

from launchpad.features.pools.registry import PoolRegistry
from launchpad.features.pools.service import CreationState, PoolCreation, PoolService
from launchpad.features.pools.validators import PoolDraft, PoolDraftValidator, ValidatedPool

__all__ = [
    "PoolRegistry",
    "CreationState",
    "PoolCreation",
    "PoolService",
    "PoolDraft",
    "PoolDraftValidator",
    "ValidatedPool",
]

"""In-memory cache of the pools visible on one ledger."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future

from launchpad.ledger.base import LedgerGateway, PoolRecord
from launchpad.shared.outcomes import LaunchpadError, classify_failure

logger = logging.getLogger(__name__)


class PoolRegistry:
    """Snapshot of every pool, replaced whole on each successful refresh.

    Concurrent ``refresh`` calls share a single in-flight read: the first
    caller does the work, the others wait on its future and get the same
    result or the same error.
    """

    def __init__(self, gateway: LedgerGateway):
        self.gateway = gateway
        self._pools: list[PoolRecord] = []
        self._lock = threading.Lock()
        self._in_flight: Future[list[PoolRecord]] | None = None
        self.last_error: LaunchpadError | None = None

    @property
    def pools(self) -> list[PoolRecord]:
        return list(self._pools)

    def get(self, pool_id: int) -> PoolRecord | None:
        for pool in self._pools:
            if pool.id == pool_id:
                return pool
        return None

    def refresh(self) -> list[PoolRecord]:
        with self._lock:
            future = self._in_flight
            owner = future is None
            if owner:
                future = Future()
                self._in_flight = future

        if not owner:
            logger.debug("Joining in-flight pool refresh")
            return list(future.result())

        try:
            pools = self._read_all()
        except Exception as e:
            error = classify_failure(e)
            self.last_error = error
            logger.warning("Pool refresh failed, keeping %d cached pools: %s", len(self._pools), error.message)
            future.set_exception(error)
            raise error from e
        else:
            self._pools = pools
            self.last_error = None
            future.set_result(pools)
            logger.info("Loaded %d pools", len(pools))
            return list(pools)
        finally:
            with self._lock:
                self._in_flight = None

    def _read_all(self) -> list[PoolRecord]:
        count = self.gateway.read_pool_count()
        return [self.gateway.read_pool(pool_id) for pool_id in range(count)]

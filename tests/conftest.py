from __future__ import annotations

import itertools
import os
from dataclasses import replace
from decimal import Decimal
from typing import Any, Callable

import pytest

from launchpad.ledger.base import BaseGateway, PoolRecord
from launchpad.session import ProviderRpcError, SessionManager
from launchpad.shared.config import POLYGON_AMOY, LaunchpadConfig
from launchpad.shared.validation import AddressValidator, AmountValidator, LedgerLimits
from launchpad.transaction import (
    ApproveAllowance,
    ClaimTokens,
    Contribute,
    CreatePool,
    FinalizePool,
    TransactionKind,
)

ACCOUNT = "0x1111111111111111111111111111111111111111"
OTHER_ACCOUNT = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
T0 = 1_700_000_000

EVM_LIMITS = LedgerLimits(18, 18, AmountValidator.MAX_UINT256, AmountValidator.MAX_UINT256)
SOLANA_LIMITS = LedgerLimits(9, 9, AmountValidator.MAX_UINT64, AmountValidator.MAX_INT64)


class FakeProvider:
    """In-memory wallet provider that records every request."""

    def __init__(self, accounts: list[str] | None = None, network_id: str = "0x13882"):
        self.accounts = [ACCOUNT] if accounts is None else accounts
        self.network_id = network_id
        self.known_networks = {"0x13882"}
        self.calls: list[tuple[str, Any]] = []
        self.listeners: dict[str, list[Callable[[Any], None]]] = {}
        self.errors: dict[str, Exception] = {}
        self._hashes = itertools.count(1)

    def _maybe_fail(self, method: str) -> None:
        error = self.errors.get(method)
        if error is not None:
            raise error

    def request_accounts(self) -> list[str]:
        self.calls.append(("request_accounts", None))
        self._maybe_fail("request_accounts")
        return list(self.accounts)

    def get_active_network(self) -> str:
        self.calls.append(("get_active_network", None))
        self._maybe_fail("get_active_network")
        return self.network_id

    def request_network_switch(self, network_id: str) -> None:
        self.calls.append(("request_network_switch", network_id))
        self._maybe_fail("request_network_switch")
        target = hex(int(network_id))
        if target not in self.known_networks:
            raise ProviderRpcError(code=4902, message="Unrecognized chain ID")
        self.network_id = target

    def request_network_registration(self, descriptor) -> None:
        self.calls.append(("request_network_registration", descriptor))
        self._maybe_fail("request_network_registration")
        self.known_networks.add(descriptor.hex_chain_id)

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self.listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self.listeners.get(event, [])):
            handler(payload)

    def sign_and_send(self, transaction: Any) -> str:
        self.calls.append(("sign_and_send", transaction))
        self._maybe_fail("sign_and_send")
        return f"0x{next(self._hashes):064x}"

    def method_calls(self, method: str) -> list[Any]:
        return [args for name, args in self.calls if name == method]


class FakeLedgerGateway(BaseGateway):
    """Ledger simulated in memory; operations take effect on confirmation."""

    def __init__(self, requires_allowance: bool = True, amount_limits: LedgerLimits = EVM_LIMITS):
        self.requires_allowance = requires_allowance
        self.amount_limits = amount_limits
        self.pools: list[PoolRecord] = []
        self.allowances: dict[str, Decimal] = {}
        self.submitted: list[Any] = []
        self.reject: dict[TransactionKind, Exception] = {}
        self.read_count_calls = 0
        self.read_pool_calls = 0
        self.read_error: Exception | None = None
        self.on_pending: Callable[[], None] | None = None
        self.before_read: Callable[[], None] | None = None
        self._built: Any = None

    def validate_address(self, value: str):
        return AddressValidator.validate_evm(value)

    def read_pool_count(self) -> int:
        self.read_count_calls += 1
        if self.before_read:
            self.before_read()
        if self.read_error:
            raise self.read_error
        return len(self.pools)

    def read_pool(self, pool_id: int) -> PoolRecord:
        self.read_pool_calls += 1
        if self.read_error:
            raise self.read_error
        if not 0 <= pool_id < len(self.pools):
            raise ValueError(f"Pool {pool_id} does not exist")
        return self.pools[pool_id]

    def build_transaction(self, operation, account: str):
        self._built = operation
        self.submitted.append(operation)
        return {"operation": operation, "from": account}

    def wait_for_confirmation(self, tx_hash: str) -> None:
        operation = self._built
        if self.on_pending:
            self.on_pending()
        error = self.reject.get(operation.kind)
        if error is not None:
            raise error
        self.apply(operation)

    def apply(self, operation) -> None:
        if isinstance(operation, ApproveAllowance):
            self.allowances[operation.asset_ref] = operation.amount
        elif isinstance(operation, CreatePool):
            self.pools.append(
                PoolRecord(
                    id=len(self.pools),
                    sale_asset_ref=operation.asset_ref,
                    window_start=operation.window_start,
                    window_end=operation.window_end,
                    total_supply=operation.total_supply,
                    unit_price=operation.unit_price,
                    min_contribution=operation.min_contribution,
                    max_contribution=operation.max_contribution,
                    total_raised=Decimal("0"),
                    finalized=False,
                )
            )
        elif isinstance(operation, Contribute):
            pool = self.pools[operation.pool_id]
            self.pools[operation.pool_id] = replace(
                pool, total_raised=pool.total_raised + operation.amount
            )
        elif isinstance(operation, FinalizePool):
            self.pools[operation.pool_id] = replace(
                self.pools[operation.pool_id], finalized=True
            )
        elif isinstance(operation, ClaimTokens):
            pass

    def add_pool(self, **overrides) -> PoolRecord:
        values = dict(
            id=len(self.pools),
            sale_asset_ref=TOKEN,
            window_start=T0,
            window_end=T0 + 3600,
            total_supply=Decimal("1000"),
            unit_price=Decimal("0.5"),
            min_contribution=Decimal("0.1"),
            max_contribution=Decimal("5"),
            total_raised=Decimal("0"),
            finalized=False,
        )
        values.update(overrides)
        record = PoolRecord(**values)
        self.pools.append(record)
        return record


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def session_manager(provider):
    return SessionManager(POLYGON_AMOY, provider)


@pytest.fixture
def connected_session(session_manager):
    session_manager.connect()
    return session_manager


@pytest.fixture
def ledger():
    return FakeLedgerGateway()


@pytest.fixture
def config():
    return LaunchpadConfig(confirmation_timeout=5.0, poll_interval=0.01)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep LAUNCHPAD_* settings from the host out of the tests."""
    for name in list(os.environ):
        if name.startswith("LAUNCHPAD_"):
            monkeypatch.delenv(name, raising=False)
    yield

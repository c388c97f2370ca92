"""Wallet session management.

A ``SessionManager`` owns the one wallet connection for a ledger: the current
account, the active network, and the listeners for account and network
changes fired by the wallet provider.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Protocol

from launchpad.shared.config import NetworkDescriptor
from launchpad.shared.outcomes import (
    UNRECOGNIZED_CHAIN_CODE,
    ErrorKind,
    LaunchpadError,
    classify_failure,
)

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class WalletSession:
    account_address: str | None = None
    network_id: str | None = None
    connection_state: ConnectionState = ConnectionState.DISCONNECTED

    def __post_init__(self):
        connected = self.connection_state == ConnectionState.CONNECTED
        if connected != (self.account_address is not None):
            raise ValueError(
                "account_address must be set exactly when the session is connected"
            )

    @property
    def is_connected(self) -> bool:
        return self.connection_state == ConnectionState.CONNECTED


class WalletEvent(Enum):
    ACCOUNTS_CHANGED = "accountsChanged"
    NETWORK_CHANGED = "networkChanged"


@dataclass
class ProviderRpcError(Exception):
    """Failure reported by a wallet provider, using EIP-1193 error codes."""

    code: int
    message: str
    data: Any = None

    def __str__(self) -> str:
        return self.message


class WalletProvider(Protocol):
    """Signing agent the session talks to."""

    def request_accounts(self) -> list[str]: ...
    def get_active_network(self) -> str: ...
    def request_network_switch(self, network_id: str) -> None: ...
    def request_network_registration(self, descriptor: NetworkDescriptor) -> None: ...
    def on(self, event: str, handler: Callable[[Any], None]) -> None: ...
    def remove_listener(self, event: str, handler: Callable[[Any], None]) -> None: ...
    def sign_and_send(self, transaction: Any) -> str: ...


class SessionManager:
    def __init__(
        self,
        network: NetworkDescriptor,
        provider: WalletProvider | None = None,
        on_reload: Callable[[], None] | None = None,
        on_session_change: Callable[[WalletSession], None] | None = None,
    ):
        self.network = network
        self.provider = provider
        self.on_reload = on_reload
        self.on_session_change = on_session_change
        self._session = WalletSession()
        self._events: queue.Queue[tuple[WalletEvent, Any]] = queue.Queue()
        self._drain_guard = threading.Lock()
        self._listening = False

    @property
    def session(self) -> WalletSession:
        return self._session

    @property
    def is_connected(self) -> bool:
        return self._session.is_connected

    def _set_session(self, session: WalletSession) -> None:
        if session == self._session:
            return
        self._session = session
        if self.on_session_change:
            try:
                self.on_session_change(session)
            except Exception as e:
                logger.error("Error in session change callback: %s", e)

    def connect(self) -> WalletSession:
        if self._session.connection_state == ConnectionState.CONNECTING:
            logger.debug("connect() ignored, connection already in progress")
            return self._session

        if self.provider is None:
            raise LaunchpadError(
                ErrorKind.PROVIDER_MISSING,
                "No wallet provider is installed",
            )

        previous = self._session
        self._set_session(WalletSession(connection_state=ConnectionState.CONNECTING))

        try:
            account = self._request_account()
            network_id = self._ensure_network()
        except LaunchpadError as e:
            self._set_session(previous)
            logger.warning("Wallet connection failed (%s): %s", e.kind.value, e.message)
            raise

        self._set_session(
            WalletSession(
                account_address=account,
                network_id=network_id,
                connection_state=ConnectionState.CONNECTED,
            )
        )
        self._register_listeners()
        logger.info("Wallet connected on %s: %s", self.network.name, account)
        return self._session

    def _request_account(self) -> str:
        try:
            accounts = self.provider.request_accounts()
        except Exception as e:
            classified = classify_failure(e)
            if classified.kind == ErrorKind.LEDGER_REJECTED:
                classified = LaunchpadError(ErrorKind.USER_REJECTED, str(e), e)
            raise classified from e

        if not accounts:
            raise LaunchpadError(
                ErrorKind.USER_REJECTED,
                "Wallet returned no accounts",
            )
        return accounts[0]

    def _ensure_network(self) -> str:
        try:
            active = self.provider.get_active_network()
        except Exception as e:
            raise self._network_failure(e) from e

        if self.network.matches(active):
            return self.network.chain_id

        logger.info("Switching wallet from network %s to %s", active, self.network.name)
        try:
            self.provider.request_network_switch(self.network.chain_id)
        except ProviderRpcError as e:
            if e.code != UNRECOGNIZED_CHAIN_CODE:
                raise self._network_failure(e) from e
            self._register_network()
        except Exception as e:
            raise self._network_failure(e) from e

        return self.network.chain_id

    def _register_network(self) -> None:
        logger.info("Network %s unknown to wallet, registering it", self.network.name)
        try:
            self.provider.request_network_registration(self.network)
            self.provider.request_network_switch(self.network.chain_id)
        except Exception as e:
            raise self._network_failure(e) from e

    def _network_failure(self, error: Exception) -> LaunchpadError:
        classified = classify_failure(error)
        if classified.kind == ErrorKind.USER_REJECTED:
            return classified
        return LaunchpadError(
            ErrorKind.NETWORK_SWITCH_FAILED,
            f"Failed to switch to {self.network.name} network: {error}",
            error,
        )

    def disconnect(self) -> None:
        self._unregister_listeners()
        while True:
            try:
                self._events.get_nowait()
            except queue.Empty:
                break
        self._set_session(WalletSession())
        logger.info("Wallet disconnected from %s", self.network.name)

    def require_account(self) -> str:
        if not self._session.is_connected:
            raise LaunchpadError.validation("Please connect your wallet first")
        return self._session.account_address

    def sign_and_send(self, transaction: Any) -> str:
        self.require_account()
        return self.provider.sign_and_send(transaction)

    # Provider notifications -------------------------------------------------

    def _register_listeners(self) -> None:
        if self._listening:
            return
        self.provider.on(WalletEvent.ACCOUNTS_CHANGED.value, self._on_accounts_changed)
        self.provider.on(WalletEvent.NETWORK_CHANGED.value, self._on_network_changed)
        self._listening = True

    def _unregister_listeners(self) -> None:
        if not self._listening:
            return
        self.provider.remove_listener(
            WalletEvent.ACCOUNTS_CHANGED.value, self._on_accounts_changed
        )
        self.provider.remove_listener(
            WalletEvent.NETWORK_CHANGED.value, self._on_network_changed
        )
        self._listening = False

    def _on_accounts_changed(self, accounts: list[str]) -> None:
        self._events.put((WalletEvent.ACCOUNTS_CHANGED, list(accounts or [])))
        self.process_events()

    def _on_network_changed(self, network_id: Any) -> None:
        self._events.put((WalletEvent.NETWORK_CHANGED, network_id))
        self.process_events()

    def process_events(self) -> int:
        """Drain queued notifications in arrival order.

        Returns the number handled. A call made while another drain is running
        returns immediately; the running drain picks up the new messages.
        """
        if not self._drain_guard.acquire(blocking=False):
            return 0

        handled = 0
        try:
            while True:
                try:
                    event, payload = self._events.get_nowait()
                except queue.Empty:
                    break
                self._handle_event(event, payload)
                handled += 1
        finally:
            self._drain_guard.release()
        return handled

    def _handle_event(self, event: WalletEvent, payload: Any) -> None:
        if not self._session.is_connected:
            logger.debug("Ignoring %s after teardown", event.value)
            return

        if event == WalletEvent.ACCOUNTS_CHANGED:
            if not payload:
                logger.info("Wallet reported no accounts, disconnecting")
                self.disconnect()
                return
            self._set_session(replace(self._session, account_address=payload[0]))
            logger.info("Wallet account changed: %s", payload[0])
        elif event == WalletEvent.NETWORK_CHANGED:
            logger.info("Wallet network changed to %s, reloading", payload)
            self.disconnect()
            if self.on_reload:
                self.on_reload()

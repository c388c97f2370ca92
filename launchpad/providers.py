"""EIP-1193 wallet provider adapter.

Wraps any ``request(method, params)`` transport (a browser bridge, a local
signer service) so it satisfies the ``WalletProvider`` protocol. The transport
bridge delivers wallet notifications by calling ``emit``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from launchpad.session import ProviderRpcError
from launchpad.shared.config import NetworkDescriptor

logger = logging.getLogger(__name__)

RequestTransport = Callable[[str, list[Any]], Any]


class Eip1193Provider:
    EVENT_ALIASES = {"chainChanged": "networkChanged"}

    def __init__(self, request: RequestTransport):
        self._request = request
        self._listeners: dict[str, list[Callable[[Any], None]]] = {}

    def request(self, method: str, params: list[Any] | None = None) -> Any:
        logger.debug("Wallet request: %s", method)
        try:
            return self._request(method, params or [])
        except ProviderRpcError:
            raise
        except Exception as e:
            code = getattr(e, "code", None)
            if isinstance(code, int):
                raise ProviderRpcError(code=code, message=str(e), data=getattr(e, "data", None)) from e
            raise

    def request_accounts(self) -> list[str]:
        return list(self.request("eth_requestAccounts") or [])

    def get_active_network(self) -> str:
        return self.request("eth_chainId")

    def request_network_switch(self, network_id: str) -> None:
        self.request(
            "wallet_switchEthereumChain",
            [{"chainId": hex(int(network_id))}],
        )

    def request_network_registration(self, descriptor: NetworkDescriptor) -> None:
        self.request("wallet_addEthereumChain", [descriptor.to_registration_params()])

    def sign_and_send(self, transaction: dict[str, Any]) -> str:
        return self.request("eth_sendTransaction", [transaction])

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self._listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, payload: Any) -> None:
        event = self.EVENT_ALIASES.get(event, event)
        for handler in list(self._listeners.get(event, [])):
            handler(payload)

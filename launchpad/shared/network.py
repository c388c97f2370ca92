"""Retry and error typing for read-only ledger RPC calls.

Both ledger clients (web3's ``HTTPProvider`` over requests, solana-py's
``Client`` over httpx) raise their own transport exceptions. ``RpcCaller``
runs a client call, retries transport failures and retryable node errors
(rate limits, a node lagging behind the cluster) with exponential backoff,
and surfaces everything else as a ``NetworkError`` on the first failure.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TypeVar

import httpx
from requests.exceptions import ConnectionError, HTTPError, Timeout
from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Solana node codes worth another attempt: node behind, slot skipped,
# block not yet available, and the generic rate-limit code some providers use.
RETRYABLE_RPC_CODES = frozenset({-32004, -32005, -32007, -32014, 429})


class NetworkErrorType(Enum):
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    HTTP_ERROR = "http_error"
    RPC_ERROR = "rpc_error"
    UNKNOWN = "unknown"


def _unwrap(error: Exception) -> Exception:
    # solana-py raises SolanaRpcException from the underlying httpx error
    if isinstance(error, SolanaRpcException) and isinstance(error.__cause__, Exception):
        return error.__cause__
    return error


@dataclass
class NetworkError(Exception):
    error_type: NetworkErrorType
    message: str
    original_error: Exception | None = None
    status_code: int | None = None
    response_text: str | None = None
    rpc_code: int | None = None

    def __str__(self) -> str:
        return self.message

    @classmethod
    def from_exception(
        cls, error: Exception, rpc_url: str = "", context: str = ""
    ) -> "NetworkError":
        if isinstance(error, NetworkError):
            return error

        prefix = f"{context}: " if context else ""
        cause = _unwrap(error)
        error_type = classify_error(cause)

        if error_type == NetworkErrorType.TIMEOUT:
            return cls(
                error_type,
                f"{prefix}RPC endpoint timed out: {rpc_url}",
                original_error=error,
            )
        if error_type == NetworkErrorType.CONNECTION_ERROR:
            return cls(
                error_type,
                f"{prefix}Cannot reach RPC endpoint {rpc_url}. Check your network connection.",
                original_error=error,
            )
        if error_type == NetworkErrorType.HTTP_ERROR:
            response = getattr(cause, "response", None)
            status_code = getattr(response, "status_code", None)
            text = getattr(response, "text", None)
            return cls(
                error_type,
                f"{prefix}RPC endpoint returned HTTP {status_code}",
                original_error=error,
                status_code=status_code,
                response_text=text if isinstance(text, str) else None,
            )
        if error_type == NetworkErrorType.RPC_ERROR:
            # RPCException carries the node's error object as its only argument
            detail: Any = cause.args[0] if cause.args else None
            code = getattr(detail, "code", None)
            return cls(
                error_type,
                f"{prefix}{getattr(detail, 'message', None) or cause}",
                original_error=error,
                rpc_code=code if isinstance(code, int) else None,
            )
        return cls(error_type, f"{prefix}{error}", original_error=error)


@dataclass
class TimeoutConfig:
    connect_timeout: float = 5.0
    read_timeout: float = 15.0

    @property
    def request_timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    retryable_status_codes: set[int] = field(
        default_factory=lambda: {408, 429, 500, 502, 503, 504}
    )
    retryable_rpc_codes: frozenset[int] = RETRYABLE_RPC_CODES

    def calculate_delay(self, attempt: int) -> float:
        return min(self.base_delay * (self.exponential_base**attempt), self.max_delay)

    def is_retryable(self, error: Exception) -> bool:
        error = NetworkError.from_exception(error)
        if error.error_type in (NetworkErrorType.TIMEOUT, NetworkErrorType.CONNECTION_ERROR):
            return True
        if error.error_type == NetworkErrorType.HTTP_ERROR:
            return error.status_code in self.retryable_status_codes
        if error.error_type == NetworkErrorType.RPC_ERROR:
            return error.rpc_code in self.retryable_rpc_codes
        return False


def classify_error(error: Exception) -> NetworkErrorType:
    error = _unwrap(error)
    if isinstance(error, RPCException):
        return NetworkErrorType.RPC_ERROR
    if isinstance(error, (Timeout, httpx.TimeoutException)):
        return NetworkErrorType.TIMEOUT
    if isinstance(error, (ConnectionError, httpx.TransportError)):
        return NetworkErrorType.CONNECTION_ERROR
    if isinstance(error, (HTTPError, httpx.HTTPStatusError)):
        return NetworkErrorType.HTTP_ERROR
    return NetworkErrorType.UNKNOWN


class RpcCaller:
    """Runs read calls and confirmation polls against one endpoint.

    Transaction submission goes through the wallet provider and never passes
    through here, so retrying is always safe.
    """

    def __init__(
        self,
        rpc_url: str,
        retry_config: RetryConfig | None = None,
        on_retry: Callable[[int, Exception, float], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.rpc_url = rpc_url
        self.retry_config = retry_config or RetryConfig()
        self.on_retry = on_retry
        self._sleep = sleep

    def call(self, context: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        attempts = self.retry_config.max_retries + 1

        for attempt in range(attempts):
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                error = NetworkError.from_exception(e, self.rpc_url, context)
                if attempt + 1 >= attempts or not self.retry_config.is_retryable(error):
                    if error is e:
                        raise
                    raise error from e

                delay = self.retry_config.calculate_delay(attempt)
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    context,
                    attempt + 1,
                    attempts,
                    delay,
                    error.message,
                )
                if self.on_retry:
                    self.on_retry(attempt + 1, error, delay)
                self._sleep(delay)

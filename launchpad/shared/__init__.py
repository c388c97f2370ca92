"""Shared utilities for the launchpad core."""

from launchpad.shared.config import (
    POLYGON_AMOY,
    SOLANA_DEVNET,
    LaunchpadConfig,
    NetworkDescriptor,
)
from launchpad.shared.logging import (
    ContextAdapter,
    LoggingConfig,
    LogLevel,
    get_logger,
    sanitize_dict,
    sanitize_message,
    setup_logging,
)
from launchpad.shared.network import (
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    RpcCaller,
    TimeoutConfig,
)
from launchpad.shared.outcomes import (
    ErrorKind,
    LaunchpadError,
    classify_failure,
    format_error_for_user,
    get_user_friendly_error,
)
from launchpad.shared.validation import (
    AddressValidator,
    AmountValidator,
    LedgerLimits,
    TimestampValidator,
    ValidationResult,
    from_base_units,
    to_base_units,
)

__all__ = [
    "POLYGON_AMOY",
    "SOLANA_DEVNET",
    "LaunchpadConfig",
    "NetworkDescriptor",
    "ContextAdapter",
    "LoggingConfig",
    "LogLevel",
    "get_logger",
    "sanitize_dict",
    "sanitize_message",
    "setup_logging",
    "NetworkError",
    "NetworkErrorType",
    "RetryConfig",
    "RpcCaller",
    "TimeoutConfig",
    "ErrorKind",
    "LaunchpadError",
    "classify_failure",
    "format_error_for_user",
    "get_user_friendly_error",
    "AddressValidator",
    "AmountValidator",
    "LedgerLimits",
    "TimestampValidator",
    "ValidationResult",
    "from_base_units",
    "to_base_units",
]

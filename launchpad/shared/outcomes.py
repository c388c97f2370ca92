"""Classification of wallet and ledger failures into user-actionable outcomes.

Every failure that leaves the core is a ``LaunchpadError`` carrying exactly one
``ErrorKind``. Unknown failures become ``LEDGER_REJECTED`` with the raw message
kept verbatim.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from launchpad.shared.logging import LogLevel

USER_REJECTED_CODE = 4001
UNRECOGNIZED_CHAIN_CODE = 4902


class ErrorKind(Enum):
    USER_REJECTED = "user_rejected"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_ALLOWANCE = "insufficient_allowance"
    PROVIDER_MISSING = "provider_missing"
    NETWORK_SWITCH_FAILED = "network_switch_failed"
    VALIDATION_FAILED = "validation_failed"
    LEDGER_REJECTED = "ledger_rejected"


@dataclass
class LaunchpadError(Exception):
    kind: ErrorKind
    message: str
    original_error: Exception | None = None

    def __str__(self) -> str:
        return self.message

    @classmethod
    def validation(cls, reason: str) -> "LaunchpadError":
        return cls(kind=ErrorKind.VALIDATION_FAILED, message=reason)


@dataclass
class OutcomeMapping:
    error_pattern: str
    kind: ErrorKind


# Order matters: "insufficient allowance" must win over "insufficient".
OUTCOME_MAPPINGS: list[OutcomeMapping] = [
    OutcomeMapping(
        error_pattern=r"user rejected|user denied|rejected the request|action_rejected|request rejected",
        kind=ErrorKind.USER_REJECTED,
    ),
    OutcomeMapping(
        error_pattern=r"allowance",
        kind=ErrorKind.INSUFFICIENT_ALLOWANCE,
    ),
    OutcomeMapping(
        error_pattern=r"insufficient funds|insufficient lamports|exceeds balance|insufficient balance|not enough balance",
        kind=ErrorKind.INSUFFICIENT_FUNDS,
    ),
    OutcomeMapping(
        error_pattern=r"no wallet|provider (is )?(missing|not (found|installed))|wallet not installed",
        kind=ErrorKind.PROVIDER_MISSING,
    ),
    OutcomeMapping(
        error_pattern=r"unrecognized chain|switch(ing)? (to )?(the )?(chain|network)|wallet_addethereumchain|wallet_switchethereumchain",
        kind=ErrorKind.NETWORK_SWITCH_FAILED,
    ),
]


@dataclass
class UserMessage:
    user_message: str
    log_level: LogLevel = LogLevel.WARNING
    suggest_action: str | None = None


USER_MESSAGES: dict[ErrorKind, UserMessage] = {
    ErrorKind.USER_REJECTED: UserMessage(
        user_message="Transaction was rejected.",
        log_level=LogLevel.INFO,
    ),
    ErrorKind.INSUFFICIENT_FUNDS: UserMessage(
        user_message="Insufficient funds for this transaction.",
        suggest_action="Ensure you have enough balance for the amount and network fees.",
    ),
    ErrorKind.INSUFFICIENT_ALLOWANCE: UserMessage(
        user_message="Token approval failed.",
        suggest_action="Approve the token transfer and try again.",
    ),
    ErrorKind.PROVIDER_MISSING: UserMessage(
        user_message="No wallet provider is installed.",
        suggest_action="Install a browser wallet to use this feature.",
    ),
    ErrorKind.NETWORK_SWITCH_FAILED: UserMessage(
        user_message="Failed to switch to the required network.",
        suggest_action="Switch networks in your wallet and try again.",
    ),
    ErrorKind.VALIDATION_FAILED: UserMessage(
        user_message="Please check your inputs.",
        log_level=LogLevel.INFO,
    ),
    ErrorKind.LEDGER_REJECTED: UserMessage(
        user_message="The transaction was rejected by the network.",
        log_level=LogLevel.ERROR,
        suggest_action="Check the pool status and your inputs, then try again.",
    ),
}


def _error_code(error: object) -> int | None:
    code = getattr(error, "code", None)
    if isinstance(code, int):
        return code
    return None


def classify_failure(error: Exception | str) -> LaunchpadError:
    if isinstance(error, LaunchpadError):
        return error

    original = error if isinstance(error, Exception) else None
    raw_message = str(error) or type(error).__name__

    if _error_code(error) == USER_REJECTED_CODE:
        return LaunchpadError(ErrorKind.USER_REJECTED, raw_message, original)

    lowered = raw_message.lower()
    for mapping in OUTCOME_MAPPINGS:
        if re.search(mapping.error_pattern, lowered):
            return LaunchpadError(mapping.kind, raw_message, original)

    return LaunchpadError(ErrorKind.LEDGER_REJECTED, raw_message, original)


def get_user_friendly_error(error: Exception | str) -> tuple[str, str | None]:
    classified = classify_failure(error)
    if classified.kind == ErrorKind.VALIDATION_FAILED:
        return classified.message, None
    mapping = USER_MESSAGES[classified.kind]
    return mapping.user_message, mapping.suggest_action


def format_error_for_user(error: Exception | str) -> str:
    user_message, suggestion = get_user_friendly_error(error)
    if suggestion:
        return f"{user_message} {suggestion}"
    return user_message


def log_level_for(kind: ErrorKind) -> int:
    return USER_MESSAGES[kind].log_level.numeric

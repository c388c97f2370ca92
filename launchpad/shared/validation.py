"""Input validation utilities for pool amounts, addresses and sale windows."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any

from solders.pubkey import Pubkey
from web3 import Web3


@dataclass
class ValidationResult:
    is_valid: bool
    error_message: str | None = None
    normalized_value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> "ValidationResult":
        return cls(is_valid=True, normalized_value=value)

    @classmethod
    def fail(cls, message: str) -> "ValidationResult":
        return cls(is_valid=False, error_message=message)


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class LedgerLimits:
    """Precision and integer width one ledger accepts for pool fields."""

    token_decimals: int
    native_decimals: int
    max_base_units: int
    max_timestamp: int


class AmountValidator:
    MAX_UINT256 = 2**256 - 1
    MAX_UINT64 = 2**64 - 1
    MAX_INT64 = 2**63 - 1

    @staticmethod
    def parse_human_amount(value: str, allow_zero: bool = True) -> ValidationResult:
        """Parse a typed amount such as ``"1,000.5"`` into a Decimal.

        Thousands separators and inner spaces are ignored. NaN and infinity
        are rejected even though Decimal accepts them.
        """
        if _is_blank(value):
            return ValidationResult.fail("Amount is required")

        cleaned = "".join(str(value).split()).replace(",", "")
        try:
            amount = Decimal(cleaned)
        except (InvalidOperation, ValueError):
            return ValidationResult.fail("Amount must be a valid number")

        if not amount.is_finite():
            return ValidationResult.fail("Invalid numeric format (special value detected)")
        if cleaned.startswith("-") or amount < 0:
            return ValidationResult.fail("Amount cannot be negative")
        if not amount and not allow_zero:
            return ValidationResult.fail("Amount must be greater than zero")
        return ValidationResult.ok(amount)

    @staticmethod
    def validate_decimal_places(amount: Decimal, decimals: int) -> ValidationResult:
        exponent = amount.normalize().as_tuple().exponent
        if not isinstance(exponent, int):
            return ValidationResult.fail("Invalid numeric format")
        if -exponent > decimals:
            return ValidationResult.fail(
                f"Too many decimal places. Maximum {decimals} allowed"
            )
        return ValidationResult.ok()

    @staticmethod
    def validate_base_units(amount: Decimal, decimals: int, max_value: int) -> ValidationResult:
        """Check that an amount is representable on the ledger.

        On success ``normalized_value`` holds the smallest-unit integer.
        """
        places = AmountValidator.validate_decimal_places(amount, decimals)
        if not places.is_valid:
            return places

        # uint256 amounts need more digits than the default context keeps
        with localcontext() as ctx:
            ctx.prec = 100
            base_units = int(amount.scaleb(decimals))
        if base_units < 0:
            return ValidationResult.fail("Amount cannot be negative")
        if base_units > max_value:
            return ValidationResult.fail("Amount exceeds maximum allowed value")
        return ValidationResult.ok(base_units)


def to_base_units(amount: Decimal, decimals: int, max_value: int = AmountValidator.MAX_UINT256) -> int:
    """Convert a human amount into the ledger's smallest-unit integer.

    Raises ValueError when the amount has more precision than the ledger
    supports or does not fit the ledger's integer width.
    """
    result = AmountValidator.validate_base_units(amount, decimals, max_value)
    if not result.is_valid:
        raise ValueError(result.error_message)
    return result.normalized_value


def from_base_units(value: int, decimals: int) -> Decimal:
    return Decimal(int(value)) / (Decimal(10) ** decimals)


class AddressValidator:
    @staticmethod
    def validate_evm(value: str) -> ValidationResult:
        if _is_blank(value):
            return ValidationResult.fail("Token address is required")
        candidate = value.strip()
        if not Web3.is_address(candidate):
            return ValidationResult.fail("Please enter a valid token address")
        return ValidationResult.ok(Web3.to_checksum_address(candidate))

    @staticmethod
    def validate_solana(value: str) -> ValidationResult:
        if _is_blank(value):
            return ValidationResult.fail("Token mint address is required")
        try:
            mint = Pubkey.from_string(value.strip())
        except ValueError:
            return ValidationResult.fail("Please enter a valid Solana token mint address")
        return ValidationResult.ok(str(mint))


class TimestampValidator:
    """Parses sale window bounds.

    Accepts unix seconds or ISO-8601 datetimes; naive datetimes are read as
    local time, the way a datetime-local form field is.
    """

    @staticmethod
    def parse(value: str, label: str = "Time") -> ValidationResult:
        if _is_blank(value):
            return ValidationResult.fail(f"{label} is required")

        raw = str(value).strip()
        if raw.isdigit():
            return ValidationResult.ok(int(raw))
        try:
            moment = datetime.fromisoformat(raw)
        except ValueError:
            return ValidationResult.fail(f"{label} must be a date and time")
        if moment.tzinfo is None:
            moment = moment.astimezone()
        return ValidationResult.ok(int(moment.timestamp()))

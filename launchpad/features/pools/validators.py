"""Pool-creation form validation."""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Callable

from launchpad.shared.validation import (
    AmountValidator,
    LedgerLimits,
    TimestampValidator,
    ValidationResult,
)


@dataclass
class PoolDraft:
    """Unvalidated pool-creation input, kept as entered."""

    sale_asset_ref: str = ""
    window_start: str = ""
    window_end: str = ""
    total_supply: str = ""
    unit_price: str = ""
    min_contribution: str = ""
    max_contribution: str = ""

    @property
    def is_empty(self) -> bool:
        return all(not getattr(self, f.name) for f in fields(self))

    def clear(self) -> None:
        for f in fields(self):
            setattr(self, f.name, "")


@dataclass(frozen=True)
class ValidatedPool:
    sale_asset_ref: str
    window_start: int
    window_end: int
    total_supply: Decimal
    unit_price: Decimal
    min_contribution: Decimal
    max_contribution: Decimal


AMOUNT_FIELDS = (
    ("total_supply", "Total supply"),
    ("unit_price", "Token price"),
    ("min_contribution", "Minimum contribution"),
    ("max_contribution", "Maximum contribution"),
)


class PoolDraftValidator:
    """Checks a draft rule by rule and stops at the first violation.

    With ``limits`` set, amounts and window bounds must also fit the target
    ledger: total supply in the sale token's decimals, the other amounts in
    the native asset's decimals, all within the ledger's integer width.
    """

    def __init__(
        self,
        address_validator: Callable[[str], ValidationResult],
        limits: LedgerLimits | None = None,
    ):
        self.address_validator = address_validator
        self.limits = limits

    def validate(self, draft: PoolDraft) -> ValidationResult:
        address = self.address_validator(draft.sale_asset_ref)
        if not address.is_valid:
            return address

        start = self._parse_time(draft.window_start, "Start time")
        if not start.is_valid:
            return start
        end = self._parse_time(draft.window_end, "End time")
        if not end.is_valid:
            return end
        if start.normalized_value >= end.normalized_value:
            return ValidationResult.fail("End time must be after start time")

        amounts: dict[str, Decimal] = {}
        for name, label in AMOUNT_FIELDS:
            parsed = AmountValidator.parse_human_amount(getattr(draft, name))
            if parsed.is_valid:
                parsed = self._fits_ledger(name, parsed)
            if not parsed.is_valid:
                return ValidationResult.fail(f"{label}: {parsed.error_message}")
            amounts[name] = parsed.normalized_value

        if amounts["min_contribution"] > amounts["max_contribution"]:
            return ValidationResult.fail(
                "Minimum contribution cannot exceed maximum contribution"
            )

        return ValidationResult.ok(
            ValidatedPool(
                sale_asset_ref=address.normalized_value,
                window_start=start.normalized_value,
                window_end=end.normalized_value,
                **amounts,
            )
        )

    def _parse_time(self, value: str, label: str) -> ValidationResult:
        parsed = TimestampValidator.parse(value, label)
        if not parsed.is_valid or self.limits is None:
            return parsed
        if not 0 <= parsed.normalized_value <= self.limits.max_timestamp:
            return ValidationResult.fail(f"{label} is out of range")
        return parsed

    def _fits_ledger(self, name: str, parsed: ValidationResult) -> ValidationResult:
        if self.limits is None:
            return parsed
        decimals = (
            self.limits.token_decimals
            if name == "total_supply"
            else self.limits.native_decimals
        )
        check = AmountValidator.validate_base_units(
            parsed.normalized_value, decimals, self.limits.max_base_units
        )
        if not check.is_valid:
            return check
        return parsed

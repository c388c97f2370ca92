from decimal import Decimal

import pytest

from launchpad.shared.validation import (
    AddressValidator,
    AmountValidator,
    TimestampValidator,
    from_base_units,
    to_base_units,
)


class TestAmountValidator:
    def test_parse_valid_amount(self):
        result = AmountValidator.parse_human_amount("1,000.5")
        assert result.is_valid
        assert result.normalized_value == Decimal("1000.5")

    def test_parse_zero_allowed_by_default(self):
        result = AmountValidator.parse_human_amount("0")
        assert result.is_valid
        assert result.normalized_value == Decimal("0")

    def test_parse_zero_rejected_when_disallowed(self):
        result = AmountValidator.parse_human_amount("0", allow_zero=False)
        assert not result.is_valid

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_parse_empty(self, value):
        result = AmountValidator.parse_human_amount(value)
        assert not result.is_valid
        assert result.error_message == "Amount is required"

    def test_parse_negative(self):
        result = AmountValidator.parse_human_amount("-1")
        assert not result.is_valid
        assert result.error_message == "Amount cannot be negative"

    def test_parse_not_a_number(self):
        result = AmountValidator.parse_human_amount("abc")
        assert not result.is_valid
        assert result.error_message == "Amount must be a valid number"

    @pytest.mark.parametrize("value", ["NaN", "Infinity"])
    def test_parse_special_values(self, value):
        assert not AmountValidator.parse_human_amount(value).is_valid

    def test_decimal_places_within_limit(self):
        assert AmountValidator.validate_decimal_places(Decimal("1.123"), 18).is_valid

    def test_decimal_places_too_many(self):
        result = AmountValidator.validate_decimal_places(Decimal("1.0000000001"), 9)
        assert not result.is_valid

    def test_base_units_returns_integer(self):
        result = AmountValidator.validate_base_units(Decimal("1.5"), 9, AmountValidator.MAX_UINT64)
        assert result.is_valid
        assert result.normalized_value == 1_500_000_000

    def test_base_units_keeps_full_uint256_precision(self):
        result = AmountValidator.validate_base_units(
            Decimal("115792089237316195423570985008687907853269984665640564039457.584007913129639935"),
            18,
            AmountValidator.MAX_UINT256,
        )
        assert result.normalized_value == AmountValidator.MAX_UINT256

    def test_base_units_over_u64(self):
        result = AmountValidator.validate_base_units(Decimal("18446744074"), 9, AmountValidator.MAX_UINT64)
        assert not result.is_valid
        assert result.error_message == "Amount exceeds maximum allowed value"

    def test_base_units_precision_checked_first(self):
        result = AmountValidator.validate_base_units(Decimal("0.0000000000000000001"), 18, AmountValidator.MAX_UINT256)
        assert result.error_message == "Too many decimal places. Maximum 18 allowed"


class TestBaseUnits:
    def test_to_base_units_ether(self):
        assert to_base_units(Decimal("0.5"), 18) == 5 * 10**17

    def test_to_base_units_lamports(self):
        assert to_base_units(Decimal("2"), 9) == 2_000_000_000

    def test_to_base_units_rejects_excess_precision(self):
        with pytest.raises(ValueError):
            to_base_units(Decimal("0.0000000001"), 9)

    def test_to_base_units_rejects_overflow(self):
        with pytest.raises(ValueError):
            to_base_units(Decimal(2**64), 0, max_value=AmountValidator.MAX_UINT64)

    def test_from_base_units(self):
        assert from_base_units(1_500_000_000, 9) == Decimal("1.5")
        assert from_base_units(0, 18) == Decimal("0")

    def test_from_base_units_plain_notation(self):
        assert str(from_base_units(10**18, 18)) == "1"


class TestAddressValidator:
    def test_valid_evm_address_is_checksummed(self):
        result = AddressValidator.validate_evm(
            "0xc9ad2061367fefbeeb60cb455021942c9f8fbdcd"
        )
        assert result.is_valid
        assert result.normalized_value == "0xC9ad2061367FefbeeB60cB455021942C9f8FBDcD"

    def test_evm_address_required(self):
        result = AddressValidator.validate_evm("")
        assert result.error_message == "Token address is required"

    def test_invalid_evm_address(self):
        result = AddressValidator.validate_evm("0x1234")
        assert not result.is_valid
        assert result.error_message == "Please enter a valid token address"

    def test_valid_solana_address(self):
        result = AddressValidator.validate_solana(
            "DWwZ2Hc5Pzh4Kjo7ns8pVrqvLgKo622DydEFZ8XHz5iy"
        )
        assert result.is_valid

    def test_invalid_solana_address(self):
        result = AddressValidator.validate_solana("not-a-key")
        assert not result.is_valid
        assert result.error_message == "Please enter a valid Solana token mint address"


class TestTimestampValidator:
    def test_unix_seconds(self):
        result = TimestampValidator.parse("1700000000")
        assert result.normalized_value == 1700000000

    def test_iso_with_timezone(self):
        result = TimestampValidator.parse("2023-11-14T22:13:20+00:00")
        assert result.normalized_value == 1700000000

    def test_naive_iso_is_local_time(self):
        from datetime import datetime

        expected = int(datetime(2024, 1, 1, 12, 0).astimezone().timestamp())
        assert TimestampValidator.parse("2024-01-01T12:00").normalized_value == expected

    def test_missing(self):
        result = TimestampValidator.parse("", "Start time")
        assert result.error_message == "Start time is required"

    def test_garbage(self):
        result = TimestampValidator.parse("tomorrow", "End time")
        assert result.error_message == "End time must be a date and time"

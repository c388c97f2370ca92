"""Tests for the EVM ledger gateway."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests
from web3 import Web3
from web3.exceptions import TimeExhausted

from launchpad.ledger.evm import ERC20_APPROVE_ABI, LAUNCHPAD_ABI, EvmGateway
from launchpad.session import ProviderRpcError
from launchpad.shared.config import DEFAULT_EVM_LAUNCHPAD_ADDRESS
from launchpad.shared.network import NetworkError, NetworkErrorType, RetryConfig
from launchpad.shared.outcomes import ErrorKind
from launchpad.transaction import (
    ApproveAllowance,
    ClaimTokens,
    Contribute,
    CreatePool,
    FinalizePool,
    TransactionState,
)

ACCOUNT = "0x1111111111111111111111111111111111111111"
TOKEN = "0x3333333333333333333333333333333333333333"
ETHER = 10**18


@pytest.fixture
def web3():
    # never connects; used for ABI encoding only
    return Web3(Web3.HTTPProvider("http://127.0.0.1:8545"))


@pytest.fixture
def gateway(config, web3):
    return EvmGateway(config, web3=web3)


@pytest.fixture
def signer():
    signer = MagicMock()
    signer.require_account.return_value = ACCOUNT
    signer.sign_and_send.return_value = "0x" + "ab" * 32
    return signer


def _decode(web3, abi, tx):
    contract = web3.eth.contract(address=tx["to"], abi=abi)
    function, params = contract.decode_function_input(tx["data"])
    return function.fn_name, params


class TestReads:
    def test_read_pool_count(self, config):
        gateway = EvmGateway(config, web3=MagicMock())
        gateway.contract.functions.poolCount.return_value.call.return_value = 3
        assert gateway.read_pool_count() == 3

    def test_read_pool_converts_units(self, config):
        gateway = EvmGateway(config, web3=MagicMock())
        gateway.contract.functions.pools.return_value.call.return_value = (
            TOKEN,
            1_700_000_000,
            1_700_003_600,
            1000 * ETHER,
            ETHER // 2,
            ETHER // 10,
            5 * ETHER,
            2 * ETHER,
            False,
        )

        pool = gateway.read_pool(4)

        gateway.contract.functions.pools.assert_called_with(4)
        assert pool.id == 4
        assert pool.sale_asset_ref == TOKEN
        assert pool.window_start == 1_700_000_000
        assert pool.window_end == 1_700_003_600
        assert pool.total_supply == Decimal("1000")
        assert pool.unit_price == Decimal("0.5")
        assert pool.min_contribution == Decimal("0.1")
        assert pool.max_contribution == Decimal("5")
        assert pool.total_raised == Decimal("2")
        assert pool.finalized is False

    def test_requires_allowance(self, gateway):
        assert gateway.requires_allowance is True

    def test_amount_limits_follow_configured_decimals(self, config, web3):
        config.token_decimals = 6
        limits = EvmGateway(config, web3=web3).amount_limits
        assert limits.token_decimals == 6
        assert limits.native_decimals == 18
        assert limits.max_base_units == 2**256 - 1

    def test_read_retries_timeouts(self, config):
        config.retry_config = RetryConfig(base_delay=0.0)
        gateway = EvmGateway(config, web3=MagicMock())
        gateway.contract.functions.poolCount.return_value.call.side_effect = [
            requests.exceptions.ReadTimeout(),
            5,
        ]
        assert gateway.read_pool_count() == 5

    def test_read_failure_is_typed(self, config):
        config.retry_config = RetryConfig(max_retries=0)
        gateway = EvmGateway(config, web3=MagicMock())
        gateway.contract.functions.pools.return_value.call.side_effect = (
            requests.exceptions.ConnectionError()
        )
        with pytest.raises(NetworkError) as exc_info:
            gateway.read_pool(2)
        assert exc_info.value.error_type == NetworkErrorType.CONNECTION_ERROR
        assert exc_info.value.message.startswith("read pool 2: ")

    def test_validate_address(self, gateway):
        assert gateway.validate_address(TOKEN).is_valid
        assert not gateway.validate_address("0x12").is_valid


class TestBuildTransaction:
    def test_create_pool(self, gateway, web3):
        op = CreatePool(
            asset_ref=TOKEN,
            window_start=1_700_000_000,
            window_end=1_700_003_600,
            total_supply=Decimal("1000"),
            unit_price=Decimal("0.5"),
            min_contribution=Decimal("0.1"),
            max_contribution=Decimal("5"),
        )
        tx = gateway.build_transaction(op, ACCOUNT)

        assert tx["from"] == ACCOUNT
        assert tx["to"] == DEFAULT_EVM_LAUNCHPAD_ADDRESS
        assert tx["value"] == "0x0"
        assert "gas" not in tx
        name, params = _decode(web3, LAUNCHPAD_ABI, tx)
        assert name == "createPool"
        assert params["_tokenAddress"] == TOKEN
        assert params["_startTime"] == 1_700_000_000
        assert params["_endTime"] == 1_700_003_600
        assert params["_totalTokens"] == 1000 * ETHER
        assert params["_tokenPrice"] == ETHER // 2
        assert params["_minContribution"] == ETHER // 10
        assert params["_maxContribution"] == 5 * ETHER

    def test_approve_targets_token_with_launchpad_spender(self, gateway, web3):
        tx = gateway.build_transaction(ApproveAllowance(TOKEN, Decimal("1000")), ACCOUNT)

        assert tx["to"] == TOKEN
        name, params = _decode(web3, ERC20_APPROVE_ABI, tx)
        assert name == "approve"
        assert params["spender"] == DEFAULT_EVM_LAUNCHPAD_ADDRESS
        assert params["amount"] == 1000 * ETHER

    def test_contribute_sends_value(self, gateway, web3):
        tx = gateway.build_transaction(Contribute(pool_id=2, amount=Decimal("2")), ACCOUNT)

        assert tx["value"] == hex(2 * ETHER)
        name, params = _decode(web3, LAUNCHPAD_ABI, tx)
        assert name == "contribute"
        assert params["_poolId"] == 2

    @pytest.mark.parametrize(
        "op,fn_name",
        [(FinalizePool(pool_id=1), "finalizePool"), (ClaimTokens(pool_id=1), "claimTokens")],
    )
    def test_pool_id_calls(self, gateway, web3, op, fn_name):
        tx = gateway.build_transaction(op, ACCOUNT)
        name, params = _decode(web3, LAUNCHPAD_ABI, tx)
        assert name == fn_name
        assert params["_poolId"] == 1

    def test_excess_precision_is_rejected(self, gateway):
        with pytest.raises(ValueError):
            gateway.build_transaction(
                Contribute(pool_id=0, amount=Decimal("0.0000000000000000001")), ACCOUNT
            )


class TestSubmit:
    def test_confirmed(self, gateway, web3, signer):
        web3.eth.wait_for_transaction_receipt = MagicMock(
            return_value={"status": 1, "blockNumber": 10}
        )
        attempt = gateway.submit(FinalizePool(pool_id=0), signer)

        assert attempt.state == TransactionState.CONFIRMED
        assert attempt.tx_hash == "0x" + "ab" * 32
        web3.eth.wait_for_transaction_receipt.assert_called_once_with(
            "0x" + "ab" * 32, timeout=5.0, poll_latency=0.01
        )

    def test_reverted(self, gateway, web3, signer):
        web3.eth.wait_for_transaction_receipt = MagicMock(
            return_value={"status": 0, "blockNumber": 10}
        )
        attempt = gateway.submit(FinalizePool(pool_id=0), signer)

        assert attempt.state == TransactionState.FAILED
        assert attempt.error.kind == ErrorKind.LEDGER_REJECTED
        assert "reverted" in attempt.error.message

    def test_user_rejects_signature(self, gateway, web3, signer):
        signer.sign_and_send.side_effect = ProviderRpcError(4001, "User denied transaction signature.")
        web3.eth.wait_for_transaction_receipt = MagicMock()

        attempt = gateway.submit(ClaimTokens(pool_id=0), signer)

        assert attempt.state == TransactionState.FAILED
        assert attempt.error.kind == ErrorKind.USER_REJECTED
        assert attempt.tx_hash is None
        web3.eth.wait_for_transaction_receipt.assert_not_called()

    def test_insufficient_funds(self, gateway, web3, signer):
        signer.sign_and_send.side_effect = RuntimeError("insufficient funds for gas * price + value")
        attempt = gateway.submit(Contribute(pool_id=0, amount=Decimal("1")), signer)
        assert attempt.error.kind == ErrorKind.INSUFFICIENT_FUNDS

    def test_receipt_timeout(self, gateway, web3, signer):
        web3.eth.wait_for_transaction_receipt = MagicMock(
            side_effect=TimeExhausted("Transaction is not in the chain after 5.0 seconds")
        )
        attempt = gateway.submit(FinalizePool(pool_id=0), signer)
        assert attempt.error.kind == ErrorKind.LEDGER_REJECTED
        assert attempt.tx_hash == "0x" + "ab" * 32

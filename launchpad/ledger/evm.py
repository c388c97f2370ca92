"""EVM ledger gateway backed by web3.py."""

from __future__ import annotations

import logging
from typing import Any

from web3 import Web3

from launchpad.ledger.base import BaseGateway, PoolRecord
from launchpad.shared.config import LaunchpadConfig
from launchpad.shared.network import RpcCaller
from launchpad.shared.validation import (
    AddressValidator,
    AmountValidator,
    LedgerLimits,
    ValidationResult,
    from_base_units,
    to_base_units,
)
from launchpad.transaction import (
    ApproveAllowance,
    ClaimTokens,
    Contribute,
    CreatePool,
    FinalizePool,
    Operation,
)

logger = logging.getLogger(__name__)


def _uint(name: str) -> dict[str, str]:
    return {"internalType": "uint256", "name": name, "type": "uint256"}


LAUNCHPAD_ABI: list[dict[str, Any]] = [
    {
        "inputs": [_uint("_poolId")],
        "name": "contribute",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "_tokenAddress", "type": "address"},
            _uint("_startTime"),
            _uint("_endTime"),
            _uint("_totalTokens"),
            _uint("_tokenPrice"),
            _uint("_minContribution"),
            _uint("_maxContribution"),
        ],
        "name": "createPool",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [_uint("_poolId")],
        "name": "finalizePool",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [_uint("_poolId")],
        "name": "claimTokens",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "poolCount",
        "outputs": [_uint("")],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_uint("")],
        "name": "pools",
        "outputs": [
            {"internalType": "address", "name": "tokenAddress", "type": "address"},
            _uint("startTime"),
            _uint("endTime"),
            _uint("totalTokens"),
            _uint("tokenPrice"),
            _uint("minContribution"),
            _uint("maxContribution"),
            _uint("totalRaised"),
            {"internalType": "bool", "name": "finalized", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

ERC20_APPROVE_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "address", "name": "spender", "type": "address"},
            _uint("amount"),
        ],
        "name": "approve",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]


class EvmTransactionReverted(Exception):
    pass


class EvmGateway(BaseGateway):
    """Launchpad contract on an EVM chain.

    Sale-asset amounts use ``config.token_decimals``; prices and contributions
    are in the chain's native currency. Transactions are handed to the wallet
    unsigned and without gas fields so the wallet estimates gas itself.
    """

    requires_allowance = True

    def __init__(self, config: LaunchpadConfig, web3: Web3 | None = None):
        self.config = config
        self.native_decimals = config.evm_network.decimals
        self.token_decimals = config.token_decimals
        self.amount_limits = LedgerLimits(
            token_decimals=self.token_decimals,
            native_decimals=self.native_decimals,
            max_base_units=AmountValidator.MAX_UINT256,
            max_timestamp=AmountValidator.MAX_UINT256,
        )
        self.web3 = web3 or Web3(
            Web3.HTTPProvider(
                config.evm_network.rpc_url,
                request_kwargs={"timeout": config.timeout_config.request_timeout},
                # RpcCaller owns retries
                exception_retry_configuration=None,
            )
        )
        self.rpc = RpcCaller(config.evm_network.rpc_url, config.retry_config)
        self.contract_address = Web3.to_checksum_address(config.evm_launchpad_address)
        self.contract = self.web3.eth.contract(
            address=self.contract_address, abi=LAUNCHPAD_ABI
        )

    def validate_address(self, value: str) -> ValidationResult:
        return AddressValidator.validate_evm(value)

    def read_pool_count(self) -> int:
        return int(self.rpc.call("read pool count", self.contract.functions.poolCount().call))

    def read_pool(self, pool_id: int) -> PoolRecord:
        (
            token_address,
            start_time,
            end_time,
            total_tokens,
            token_price,
            min_contribution,
            max_contribution,
            total_raised,
            finalized,
        ) = self.rpc.call(f"read pool {pool_id}", self.contract.functions.pools(pool_id).call)

        return PoolRecord(
            id=pool_id,
            sale_asset_ref=token_address,
            window_start=int(start_time),
            window_end=int(end_time),
            total_supply=from_base_units(total_tokens, self.token_decimals),
            unit_price=from_base_units(token_price, self.native_decimals),
            min_contribution=from_base_units(min_contribution, self.native_decimals),
            max_contribution=from_base_units(max_contribution, self.native_decimals),
            total_raised=from_base_units(total_raised, self.native_decimals),
            finalized=bool(finalized),
        )

    def _call_to(self, to: str, data: str, account: str, value: int = 0) -> dict[str, Any]:
        return {
            "from": account,
            "to": to,
            "data": data,
            "value": hex(value),
        }

    def build_transaction(self, operation: Operation, account: str) -> dict[str, Any]:
        if isinstance(operation, ApproveAllowance):
            token = self.web3.eth.contract(
                address=Web3.to_checksum_address(operation.asset_ref),
                abi=ERC20_APPROVE_ABI,
            )
            data = token.encode_abi(
                "approve",
                args=[
                    self.contract_address,
                    to_base_units(operation.amount, self.token_decimals),
                ],
            )
            return self._call_to(token.address, data, account)

        if isinstance(operation, CreatePool):
            data = self.contract.encode_abi(
                "createPool",
                args=[
                    Web3.to_checksum_address(operation.asset_ref),
                    operation.window_start,
                    operation.window_end,
                    to_base_units(operation.total_supply, self.token_decimals),
                    to_base_units(operation.unit_price, self.native_decimals),
                    to_base_units(operation.min_contribution, self.native_decimals),
                    to_base_units(operation.max_contribution, self.native_decimals),
                ],
            )
            return self._call_to(self.contract_address, data, account)

        if isinstance(operation, Contribute):
            data = self.contract.encode_abi("contribute", args=[operation.pool_id])
            value = to_base_units(operation.amount, self.native_decimals)
            return self._call_to(self.contract_address, data, account, value)

        if isinstance(operation, FinalizePool):
            data = self.contract.encode_abi("finalizePool", args=[operation.pool_id])
            return self._call_to(self.contract_address, data, account)

        if isinstance(operation, ClaimTokens):
            data = self.contract.encode_abi("claimTokens", args=[operation.pool_id])
            return self._call_to(self.contract_address, data, account)

        raise ValueError(f"Unsupported operation: {operation!r}")

    def wait_for_confirmation(self, tx_hash: str) -> None:
        receipt = self.web3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=self.config.confirmation_timeout,
            poll_latency=self.config.poll_interval,
        )
        if receipt["status"] == 0:
            raise EvmTransactionReverted(f"Transaction reverted: {tx_hash}")
        logger.debug("Transaction %s included in block %s", tx_hash, receipt["blockNumber"])

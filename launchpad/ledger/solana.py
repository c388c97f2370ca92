"""Solana ledger gateway for the Anchor launchpad program.

Reads go through solana-py's ``Client`` wrapped in ``RpcCaller`` retries;
instructions are assembled with solders and handed to the wallet as a
partially signed transaction.
"""

from __future__ import annotations

import hashlib
import logging
import struct
import time
from typing import Callable

import base58
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.types import MemcmpOpts
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.rpc.responses import RpcKeyedAccount
from solders.signature import Signature
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import RENT
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

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
    ClaimTokens,
    Contribute,
    CreatePool,
    FinalizePool,
    Operation,
)

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)

POOL_SEED = b"pool"
CONTRIBUTION_SEED = b"contribution"

# authority, mint, vault, start, end, total, price, min, max, raised, finalized, bump
POOL_LAYOUT = struct.Struct("<32s32s32sqqQQQQQ?B")
DISCRIMINATOR_SIZE = 8

CONFIRMED_STATUSES = (
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:DISCRIMINATOR_SIZE]


def instruction_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode()).digest()[:DISCRIMINATOR_SIZE]


POOL_DISCRIMINATOR = account_discriminator("Pool")


def associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


class SolanaTransactionFailed(Exception):
    pass


class SolanaGateway(BaseGateway):
    """Launchpad program on Solana.

    The program keeps no pool counter, so pool ids are positions in the
    program's pool accounts ordered by account address, as of the latest
    ``read_pool_count``. Ids are not stable across refreshes: a new pool whose
    address sorts lower shifts every later id by one. Callers that need a
    durable key should use ``PoolRecord.pool_address``.

    Contributions and prices are in SOL; sale-asset amounts use
    ``config.solana_token_decimals``.
    """

    requires_allowance = False

    def __init__(
        self,
        config: LaunchpadConfig,
        client: Client | None = None,
        keypair_factory: Callable[[], Keypair] = Keypair,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.program_id = Pubkey.from_string(config.solana_program_id)
        self.native_decimals = config.solana_network.decimals
        self.token_decimals = config.solana_token_decimals
        self.amount_limits = LedgerLimits(
            token_decimals=self.token_decimals,
            native_decimals=self.native_decimals,
            max_base_units=AmountValidator.MAX_UINT64,
            max_timestamp=AmountValidator.MAX_INT64,
        )
        self.client = client or Client(
            config.solana_network.rpc_url,
            commitment=Confirmed,
            timeout=config.timeout_config.read_timeout,
        )
        self.rpc = RpcCaller(
            config.solana_network.rpc_url, config.retry_config, sleep=sleep
        )
        self._keypair_factory = keypair_factory
        self._sleep = sleep
        self._pool_addresses: list[str] = []

    def validate_address(self, value: str) -> ValidationResult:
        return AddressValidator.validate_solana(value)

    # Reads --------------------------------------------------------------------

    def _list_pool_accounts(self) -> list[RpcKeyedAccount]:
        response = self.rpc.call(
            "list pools",
            self.client.get_program_accounts,
            self.program_id,
            encoding="base64",
            filters=[
                MemcmpOpts(
                    offset=0,
                    bytes=base58.b58encode(POOL_DISCRIMINATOR).decode("utf-8"),
                )
            ],
        )
        return sorted(response.value, key=lambda entry: str(entry.pubkey))

    def read_pool_count(self) -> int:
        accounts = self._list_pool_accounts()
        self._pool_addresses = [str(entry.pubkey) for entry in accounts]
        return len(self._pool_addresses)

    def _pool_address(self, pool_id: int) -> str:
        if not 0 <= pool_id < len(self._pool_addresses):
            self.read_pool_count()
        if not 0 <= pool_id < len(self._pool_addresses):
            raise ValueError(f"Pool {pool_id} does not exist")
        return self._pool_addresses[pool_id]

    def read_pool(self, pool_id: int) -> PoolRecord:
        address = self._pool_address(pool_id)
        response = self.rpc.call(
            f"read pool {pool_id}",
            self.client.get_account_info,
            Pubkey.from_string(address),
            encoding="base64",
        )
        if response.value is None:
            raise ValueError(f"Pool account {address} not found")
        return self.decode_pool(pool_id, address, bytes(response.value.data))

    def decode_pool(self, pool_id: int, address: str, data: bytes) -> PoolRecord:
        if data[:DISCRIMINATOR_SIZE] != POOL_DISCRIMINATOR:
            raise ValueError(f"Account {address} is not a launchpad pool")
        (
            _authority,
            mint,
            vault,
            start_time,
            end_time,
            total_tokens,
            token_price,
            min_contribution,
            max_contribution,
            total_raised,
            finalized,
            _bump,
        ) = POOL_LAYOUT.unpack_from(data, DISCRIMINATOR_SIZE)

        return PoolRecord(
            id=pool_id,
            sale_asset_ref=str(Pubkey(mint)),
            window_start=start_time,
            window_end=end_time,
            total_supply=from_base_units(total_tokens, self.token_decimals),
            unit_price=from_base_units(token_price, self.native_decimals),
            min_contribution=from_base_units(min_contribution, self.native_decimals),
            max_contribution=from_base_units(max_contribution, self.native_decimals),
            total_raised=from_base_units(total_raised, self.native_decimals),
            finalized=finalized,
            pool_address=address,
            vault_address=str(Pubkey(vault)),
        )

    # Writes -------------------------------------------------------------------

    def _u64(self, amount, decimals: int) -> int:
        return to_base_units(amount, decimals, max_value=AmountValidator.MAX_UINT64)

    def _pool_accounts_for(self, pool_id: int) -> tuple[Pubkey, PoolRecord]:
        record = self.read_pool(pool_id)
        return Pubkey.from_string(record.pool_address), record

    def build_instructions(
        self, operation: Operation, user: Pubkey
    ) -> tuple[list[Instruction], list[Keypair]]:
        if isinstance(operation, CreatePool):
            mint = Pubkey.from_string(operation.asset_ref)
            pool, bump = Pubkey.find_program_address([POOL_SEED, bytes(mint)], self.program_id)
            vault = self._keypair_factory()
            data = instruction_discriminator("initialize_pool") + struct.pack(
                "<BqqQQQQ",
                bump,
                operation.window_start,
                operation.window_end,
                self._u64(operation.total_supply, self.token_decimals),
                self._u64(operation.unit_price, self.native_decimals),
                self._u64(operation.min_contribution, self.native_decimals),
                self._u64(operation.max_contribution, self.native_decimals),
            )
            accounts = [
                AccountMeta(pubkey=user, is_signer=True, is_writable=True),
                AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
                AccountMeta(pubkey=pool, is_signer=False, is_writable=True),
                AccountMeta(pubkey=vault.pubkey(), is_signer=True, is_writable=True),
                AccountMeta(
                    pubkey=associated_token_address(user, mint),
                    is_signer=False,
                    is_writable=True,
                ),
                AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
                AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
                AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
            ]
            return [Instruction(self.program_id, data, accounts)], [vault]

        if isinstance(operation, Contribute):
            pool, _ = self._pool_accounts_for(operation.pool_id)
            contribution, _ = Pubkey.find_program_address(
                [CONTRIBUTION_SEED, bytes(pool), bytes(user)], self.program_id
            )
            data = instruction_discriminator("contribute") + struct.pack(
                "<Q", self._u64(operation.amount, self.native_decimals)
            )
            accounts = [
                AccountMeta(pubkey=pool, is_signer=False, is_writable=True),
                AccountMeta(pubkey=contribution, is_signer=False, is_writable=True),
                AccountMeta(pubkey=user, is_signer=True, is_writable=True),
                AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            ]
            return [Instruction(self.program_id, data, accounts)], []

        if isinstance(operation, FinalizePool):
            pool, _ = self._pool_accounts_for(operation.pool_id)
            accounts = [
                AccountMeta(pubkey=pool, is_signer=False, is_writable=True),
                # raised lamports are held by the pool account itself
                AccountMeta(pubkey=pool, is_signer=False, is_writable=True),
                AccountMeta(pubkey=user, is_signer=True, is_writable=True),
            ]
            data = instruction_discriminator("finalize_pool")
            return [Instruction(self.program_id, data, accounts)], []

        if isinstance(operation, ClaimTokens):
            pool, record = self._pool_accounts_for(operation.pool_id)
            mint = Pubkey.from_string(record.sale_asset_ref)
            contribution, _ = Pubkey.find_program_address(
                [CONTRIBUTION_SEED, bytes(pool), bytes(user)], self.program_id
            )
            accounts = [
                AccountMeta(pubkey=pool, is_signer=False, is_writable=True),
                AccountMeta(pubkey=contribution, is_signer=False, is_writable=True),
                AccountMeta(
                    pubkey=Pubkey.from_string(record.vault_address),
                    is_signer=False,
                    is_writable=True,
                ),
                AccountMeta(
                    pubkey=associated_token_address(user, mint),
                    is_signer=False,
                    is_writable=True,
                ),
                AccountMeta(pubkey=user, is_signer=True, is_writable=False),
                AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            ]
            data = instruction_discriminator("claim_tokens")
            return [Instruction(self.program_id, data, accounts)], []

        raise ValueError(f"Unsupported operation: {operation!r}")

    def latest_blockhash(self) -> Hash:
        response = self.rpc.call(
            "latest blockhash", self.client.get_latest_blockhash, Confirmed
        )
        return response.value.blockhash

    def build_transaction(self, operation: Operation, account: str) -> Transaction:
        user = Pubkey.from_string(account)
        instructions, extra_signers = self.build_instructions(operation, user)
        blockhash = self.latest_blockhash()
        message = Message.new_with_blockhash(instructions, user, blockhash)
        transaction = Transaction.new_unsigned(message)
        if extra_signers:
            transaction.partial_sign(extra_signers, blockhash)
        return transaction

    def wait_for_confirmation(self, tx_hash: str) -> None:
        signature = Signature.from_string(tx_hash)
        deadline = time.monotonic() + self.config.confirmation_timeout
        while True:
            response = self.rpc.call(
                "signature status",
                self.client.get_signature_statuses,
                [signature],
                search_transaction_history=True,
            )
            status = response.value[0] if response.value else None
            if status is not None:
                if status.err is not None:
                    raise SolanaTransactionFailed(f"Transaction {tx_hash} failed: {status.err}")
                if status.confirmation_status in CONFIRMED_STATUSES:
                    logger.debug("Transaction %s confirmed at slot %s", tx_hash, status.slot)
                    return

            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f"Transaction {tx_hash} not confirmed within "
                    f"{self.config.confirmation_timeout} seconds"
                )
            self._sleep(self.config.poll_interval)

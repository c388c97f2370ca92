from __future__ import annotations

import argparse

from launchpad.features.pools import PoolRegistry
from launchpad.ledger import EvmGateway, SolanaGateway
from launchpad.shared import (
    LaunchpadConfig,
    LaunchpadError,
    LoggingConfig,
    format_error_for_user,
    setup_logging,
)


def main() -> int:
    parser = argparse.ArgumentParser(description="List launchpad pools on a ledger")
    parser.add_argument("ledger", choices=["evm", "solana"])
    args = parser.parse_args()

    setup_logging(LoggingConfig.from_environment())
    config = LaunchpadConfig.from_environment()
    gateway = EvmGateway(config) if args.ledger == "evm" else SolanaGateway(config)

    try:
        pools = PoolRegistry(gateway).refresh()
    except LaunchpadError as exc:
        print(format_error_for_user(exc))
        return 1

    if not pools:
        print("no pools found")
        return 0

    for pool in pools:
        status = "finalized" if pool.finalized else "active"
        print(
            f"#{pool.id} {pool.sale_asset_ref} [{status}] "
            f"raised {pool.total_raised} / price {pool.unit_price} "
            f"window {pool.window_start}-{pool.window_end}"
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

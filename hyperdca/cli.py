"""CLI tool for operator tasks.

Usage:
    python -m hyperdca.cli run-dca
    python -m hyperdca.cli sync-wallet <profile_id>
"""

import asyncio
import sys

from hyperdca.database import create_db_and_tables
from hyperdca.engine.dca_job import run_due_plans
from hyperdca.services.components import build_executor, build_store, build_wallet_sync
from hyperdca.services.errors import TradingError
from hyperdca.utils.logging import setup_logging


def run_dca():
    """Run one DCA sweep over all due plans."""
    store = build_store()
    results = asyncio.run(run_due_plans(store, build_executor(store)))
    print(f"Executed {len(results)} plans.")
    for r in results:
        detail = r.get("order_id") or r.get("error") or ""
        print(f"  plan {r['plan_id']}: {r['status']} {detail}")


def sync_wallet(profile_id: int):
    """Reconcile one profile's holdings and history with Hyperliquid."""
    store = build_store()
    profile = store.get_profile(profile_id)
    if profile is None:
        print(f"Profile {profile_id} not found.")
        sys.exit(1)
    if not profile.wallet_address:
        print(f"Profile {profile_id} has no wallet address.")
        sys.exit(1)

    sync = build_wallet_sync(store)
    try:
        result = asyncio.run(sync.sync(profile.id, profile.wallet_address, profile.network_mode))
    except TradingError as e:
        print(f"Sync failed ({e.kind}): {e.message}")
        sys.exit(1)

    print(f"Synced profile {profile_id} ({profile.network_mode}).")
    print(f"  USDC: {result.balance['usdc_balance']:.2f}  total: ${result.balance['total_value_usd']:.2f}")
    print(f"  holdings: {len(result.holdings)}  transactions synced: {result.transactions_synced}")


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m hyperdca.cli <command>")
        print("Commands: run-dca, sync-wallet <profile_id>")
        sys.exit(1)

    setup_logging()
    create_db_and_tables()

    command = sys.argv[1]
    if command == "run-dca":
        run_dca()
    elif command == "sync-wallet":
        if len(sys.argv) < 3 or not sys.argv[2].isdigit():
            print("Usage: python -m hyperdca.cli sync-wallet <profile_id>")
            sys.exit(1)
        sync_wallet(int(sys.argv[2]))
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()

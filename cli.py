#!/usr/bin/env python3
"""Simple CLI for swapping against the configured pool"""

import argparse
import asyncio
import sys
from typing import Optional

from poolswap.core.errors import PoolSwapError
from poolswap.core.ledger.models import PoolReserves
from poolswap.core.session import SwapSession
from poolswap.core.swap import StateTransition, SwapRun, SwapState
from poolswap.core.sync import PoolSnapshot
from poolswap.logging_config import setup_logging


def print_reserves(reserves: Optional[PoolReserves]):
    if reserves is None:
        print("Reserves: unknown")
        return
    print(f"Reserve A: {reserves.reserve_a}")
    print(f"Reserve B: {reserves.reserve_b}")


def print_snapshot(snapshot: PoolSnapshot):
    """Pretty print the current pool view"""
    print("\n🔄 Pool State")
    print("=" * 50)
    print_reserves(snapshot.reserves)
    if snapshot.owner:
        balance = f"{snapshot.balance.human} ({snapshot.balance.value} raw)" if snapshot.balance else "unknown"
        print(f"Balance of {snapshot.owner}: {balance}")
    for field_name, error in snapshot.errors.items():
        print(f"⚠️  {field_name}: {error}")


def print_run(run: SwapRun):
    icon = "✅" if run.state == SwapState.DONE else "❌"
    print(f"\n{icon} {run.status_message}")
    if run.approval:
        print(f"   Approval: {run.approval.tx_hash} ({run.approval.status.value})")
    if run.swap:
        print(f"   Swap:     {run.swap.tx_hash} ({run.swap.status.value})")
    if run.snapshot:
        print_snapshot(run.snapshot)


async def _print_transition(transition: StateTransition, run: SwapRun) -> None:
    print(f"   … {transition.to_state.value.replace('_', ' ')}")


async def cli_connect(session: SwapSession):
    identity = await session.connect()
    print(f"🔗 Connected: {identity.address}")
    print_snapshot(session.snapshot)


async def cli_reserves(session: SwapSession):
    reserves = await session.reserves()
    print_reserves(reserves)


async def cli_balance(session: SwapSession, address: Optional[str]):
    if not address:
        await session.connect()
    balance = await session.balance(address)
    print(f"Balance: {balance.human} ({balance.value} raw, {balance.decimals} decimals)")


async def cli_swap(session: SwapSession, amount: str, raw: bool, min_out: Optional[int]) -> bool:
    identity = await session.connect()
    print(f"🔁 Swapping {amount}{' (raw)' if raw else ''} from {identity.address}")
    if (min_out if min_out is not None else session.config.default_min_amount_out) == 0:
        print("⚠️  min-out is 0: no slippage protection")

    session.orchestrator.register_transition_callback(_print_transition)
    run = await session.swap(int(amount) if raw else amount, min_out)
    print_run(run)
    return run.state == SwapState.DONE


async def cli_add_liquidity(session: SwapSession, amount_a: int, amount_b: int):
    await session.connect()
    outcome = await session.add_liquidity(amount_a, amount_b)
    print(f"💧 addLiquidity {outcome.tx_hash}: {outcome.status.value}")
    print_snapshot(session.snapshot)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pool swap CLI")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("connect", help="Connect the wallet and show pool state")
    subparsers.add_parser("reserves", help="Read current pool reserves")

    balance_parser = subparsers.add_parser("balance", help="Read a token balance")
    balance_parser.add_argument("address", nargs="?", help="Owner address (default: connected wallet)")

    swap_parser = subparsers.add_parser("swap", help="Swap tokens through the pool")
    swap_parser.add_argument("amount", help="Amount in (human units unless --raw)")
    swap_parser.add_argument("--raw", action="store_true", help="Amount is already in minor units")
    swap_parser.add_argument("--min-out", type=int, default=None, help="Minimum output in minor units")

    liquidity_parser = subparsers.add_parser("add-liquidity", help="Add liquidity (minor units)")
    liquidity_parser.add_argument("amount_a", type=int)
    liquidity_parser.add_argument("amount_b", type=int)

    return parser


async def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.log_level, json_logs=False)
    session = SwapSession.from_settings()
    ok = True

    try:
        if args.command == "connect":
            await cli_connect(session)
        elif args.command == "reserves":
            await cli_reserves(session)
        elif args.command == "balance":
            await cli_balance(session, args.address)
        elif args.command == "swap":
            ok = await cli_swap(session, args.amount, args.raw, args.min_out)
        elif args.command == "add-liquidity":
            await cli_add_liquidity(session, args.amount_a, args.amount_b)
    except PoolSwapError as e:
        print(f"❌ {e.code}: {e.message}")
        ok = False
    except ValueError as e:
        print(f"❌ Error: {e}")
        ok = False
    finally:
        await session.close()

    return 0 if ok else 1


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

"""Manual AMM adapter CLI (explicit execution only).

Usage examples:
  python scripts/adapter_cli.py --network
  python scripts/adapter_cli.py --switch-network
  python scripts/adapter_cli.py --balances
  python scripts/adapter_cli.py --reserves --token-a WETH --token-b USDT
  python scripts/adapter_cli.py --quote --token-in WETH --token-out USDT --amount-in 1.0 --slippage 1
  python scripts/adapter_cli.py --swap --token-in WETH --token-out USDT --amount-in 1.0 --slippage 1 --dry-run
  python scripts/adapter_cli.py --swap --token-in WETH --token-out USDT --amount-in 1.0 --slippage 1 --confirm
  python scripts/adapter_cli.py --advise --token-a WETH --token-b USDT --amount-a 2.5
  python scripts/adapter_cli.py --add-liquidity --token-a WETH --token-b USDT --amount-a 1 --amount-b 2000 --confirm
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, Optional

from ammcore.orchestration.amounts import quantize_down
from ammcore.orchestration.errors import OrchestrationError
from ammcore.orchestration.service import AdapterService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manual AMM adapter CLI")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("--network", action="store_true", help="Show the network state")
    action.add_argument("--switch-network", action="store_true", help="Switch to the expected network")
    action.add_argument("--balances", action="store_true", help="Refresh and show token balances")
    action.add_argument("--reserves", action="store_true", help="Show pool reserves for --token-a/--token-b")
    action.add_argument("--quote", action="store_true", help="Quote a swap without executing")
    action.add_argument("--swap", action="store_true", help="Swap an exact input amount")
    action.add_argument("--advise", action="store_true", help="Advise the second liquidity amount")
    action.add_argument("--add-liquidity", action="store_true", help="Add paired liquidity")

    parser.add_argument("--token-in", help="Input token symbol or address")
    parser.add_argument("--token-out", help="Output token symbol or address")
    parser.add_argument("--amount-in", help="Human decimal amount of --token-in")
    parser.add_argument("--token-a", help="First liquidity token")
    parser.add_argument("--token-b", help="Second liquidity token")
    parser.add_argument("--amount-a", help="Human decimal amount of --token-a")
    parser.add_argument("--amount-b", help="Human decimal amount of --token-b (advised when omitted)")
    parser.add_argument("--slippage", help="Slippage tolerance in percent (default from settings)")
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="Round amounts down to token precision instead of rejecting them",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print intended transaction without executing")
    parser.add_argument("--confirm", action="store_true", help="Execute (must be set to send transactions)")
    return parser


def _print(title: str, payload: Any) -> None:
    print(f"\n{title}")
    print(json.dumps(payload, indent=2, default=str))


def _require(args: argparse.Namespace, *names: str) -> None:
    missing = [f"--{name.replace('_', '-')}" for name in names if not getattr(args, name)]
    if missing:
        raise SystemExit(f"Missing required option(s): {', '.join(missing)}")


def _amount(service: AdapterService, token_ref: str, value: str, truncate: bool) -> str:
    if not truncate:
        return value
    token = service.token(token_ref)
    truncated, dropped = quantize_down(value, token.decimals)
    if dropped:
        print(f"Note: {value} {token.symbol} rounded down to {truncated}")
    return truncated


async def run(args: argparse.Namespace, service: AdapterService) -> int:
    if (args.swap or args.add_liquidity) and not args.confirm and not args.dry_run:
        raise SystemExit("Refusing to send a transaction without --confirm or --dry-run")

    try:
        await service.initialize()

        if args.network:
            _print("Network", service.guard.describe())
            return 0

        if args.switch_network:
            state = await service.switch_network()
            _print("Network", {"state": state.value, "chain_id": service.guard.chain_id})
            return 0

        if args.balances:
            _print("Balances", service.snapshot.to_dict())
            return 0

        if args.reserves:
            _require(args, "token_a", "token_b")
            result = await service.read_reserves(args.token_a, args.token_b)
            _print("Reserves", {**result.value.to_dict(), "network_state": result.network_state.value})
            return 0

        if args.quote or args.swap:
            _require(args, "token_in", "token_out", "amount_in")
            amount_in = _amount(service, args.token_in, args.amount_in, args.truncate)
            quote = await service.quote_swap(args.token_in, args.token_out, amount_in, args.slippage)
            _print("Swap Preview", quote.to_dict())
            if args.quote or (args.dry_run and not args.confirm):
                if args.swap:
                    print("\nDry run complete. No transaction sent.")
                return 0
            result = await service.execute_swap(args.token_in, args.token_out, amount_in, args.slippage)
            _print("Swap Result", result.to_dict())
            return 0

        if args.advise:
            _require(args, "token_a", "token_b", "amount_a")
            amount_a = _amount(service, args.token_a, args.amount_a, args.truncate)
            advice = await service.advise_second_amount(args.token_a, args.token_b, amount_a)
            _print("Advice", advice.to_dict())
            return 0

        if args.add_liquidity:
            _require(args, "token_a", "token_b", "amount_a")
            amount_a = _amount(service, args.token_a, args.amount_a, args.truncate)
            amount_b: Optional[str] = args.amount_b
            if amount_b is None:
                advice = await service.advise_second_amount(args.token_a, args.token_b, amount_a)
                amount_b = advice.amount_b.decimal_string
                print(f"Using advised amount_b={amount_b} ({advice.source})")
            else:
                amount_b = _amount(service, args.token_b, amount_b, args.truncate)
            _print(
                "Liquidity Preview",
                {
                    "token_a": args.token_a,
                    "token_b": args.token_b,
                    "amount_a": amount_a,
                    "amount_b": amount_b,
                    "slippage_pct": args.slippage or str(service.default_tolerance),
                    "network_state": service.current_network_state().value,
                },
            )
            if args.dry_run and not args.confirm:
                print("\nDry run complete. No transaction sent.")
                return 0
            result = await service.execute_add_liquidity(
                args.token_a, args.token_b, amount_a, amount_b, args.slippage
            )
            _print("Liquidity Result", result.to_dict())
            return 0
    except OrchestrationError as exc:
        _print("Failed", exc.to_dict())
        if getattr(exc, "guidance", None):
            print(f"\n{exc.guidance}")
        raise SystemExit(f"{exc.kind} at step '{exc.step.value}': {exc.message}") from exc

    return 1


def main() -> None:
    args = build_parser().parse_args()

    from ammcore.settings.config import settings

    try:
        service = AdapterService.from_settings(settings)
    except Exception as exc:
        raise SystemExit(f"Adapter client unavailable: {exc}") from exc
    raise SystemExit(asyncio.run(run(args, service)))


if __name__ == "__main__":
    main()

# tastybroker/app/__main__.py
from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from typing import List

from loguru import logger

from tastybroker.backend.broker.accounts import get_balances, list_accounts, list_positions
from tastybroker.backend.broker.errors import (
    AuthenticationFailed,
    BrokerError,
    RateLimited,
    TwoFactorRequired,
)
from tastybroker.backend.broker.session import Session, resolve_by_login, resolve_by_token
from tastybroker.config import Settings, settings as default_settings
from tastybroker.domain.models import Account, Balance, Position
from tastybroker.domain.quantity import RationalQuantity
from tastybroker.infra.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tastybroker",
        description="Read accounts, positions and balances from the tastyworks API.",
    )
    p.add_argument(
        "action",
        choices=["accounts", "positions", "balances"],
        help="accounts (list accounts), positions or balances (of one or all accounts).",
    )
    p.add_argument("--token", default=None, help="Session token (default: TASTY_API_TOKEN).")
    p.add_argument("--login", default=None, help="Log in with this username (default: TASTY_LOGIN).")
    p.add_argument("--otp", default=None, help="One-time code for two-factor login.")
    p.add_argument("--account", default=None, help="Only this account number for 'positions' and 'balances'.")
    p.add_argument(
        "--log-level",
        default=None,
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL, INFO).",
    )
    return p


def format_quantity(q: RationalQuantity) -> str:
    if q.is_integer():
        return str(q.to_integer())
    try:
        return q.to_decimal_string()
    except ValueError:
        return str(q)


async def open_session(args: argparse.Namespace, cfg: Settings) -> Session:
    token = args.token or cfg.TASTY_API_TOKEN
    login = args.login or cfg.TASTY_LOGIN
    if login and not args.token:
        password = cfg.TASTY_PASSWORD or getpass.getpass(f"Password for {login}: ")
        return await resolve_by_login(
            login, password, args.otp, remember_me=cfg.TASTY_REMEMBER_ME, cfg=cfg
        )
    if token:
        return resolve_by_token(token, cfg=cfg)
    raise AuthenticationFailed("No credentials: pass --token/--login or set TASTY_API_TOKEN/TASTY_LOGIN")


def print_accounts(accounts: List[Account]) -> None:
    print("\n=== ACCOUNTS ===")
    if not accounts:
        print("(none)")
    for a in accounts:
        print(f"{a.account_number:>10}  {a.nickname or '-':<20}  {a.account_type_name or '-':<16}  {a.margin_or_cash or '-'}")
    print()


def print_positions(account_number: str, positions: List[Position]) -> None:
    print(f"\n=== POSITIONS {account_number} ===")
    if not positions:
        print("(none)")
    for p in positions:
        print(f"{format_quantity(p.signed_quantity()):>10} x {p.symbol:<24} {p.instrument_type.value}")
    print()


def print_balance(balance: Balance) -> None:
    print(f"\n=== BALANCES {balance.account_number} ===")
    for label, value in (
        ("Cash", balance.cash_balance),
        ("Net liquidating value", balance.net_liquidating_value),
        ("Equity buying power", balance.equity_buying_power),
        ("Derivative buying power", balance.derivative_buying_power),
        ("Maintenance requirement", balance.maintenance_requirement),
    ):
        shown = format_quantity(value) if value is not None else "-"
        print(f"{label:<24} {shown:>14}")
    print()


async def run(args: argparse.Namespace, cfg: Settings) -> int:
    async with await open_session(args, cfg) as session:
        if args.action == "accounts":
            print_accounts(await list_accounts(session))
            return 0

        numbers = [args.account] if args.account else [a.account_number for a in await list_accounts(session)]
        if args.action == "balances":
            for balance in await asyncio.gather(*(get_balances(n, session) for n in numbers)):
                print_balance(balance)
            return 0

        results = await asyncio.gather(*(list_positions(n, session) for n in numbers))
        for number, positions in zip(numbers, results):
            print_positions(number, positions)
        return 0


def main(argv: list[str] | None = None, cfg: Settings | None = None) -> int:
    cfg = cfg or default_settings
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level or cfg.LOG_LEVEL)

    try:
        return asyncio.run(run(args, cfg))
    except TwoFactorRequired:
        logger.error("This login needs a one-time code: rerun with --otp")
        return 1
    except RateLimited as e:
        logger.error("Rate limited, retry after {}s", e.retry_after or "?")
        return 1
    except BrokerError as e:
        logger.error("Error: {}", e)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())

# tastybroker/backend/broker/accounts.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import AsyncIterator, List, Optional, Tuple, Union
from urllib.parse import quote

from tastybroker.backend.broker.client import Endpoint
from tastybroker.backend.broker.session import Session
from tastybroker.domain.models import Account, Balance, Pagination, Position, Transaction, WireModel


class _AccountItem(WireModel):
    account: Account
    authority_level: Optional[str] = None


class _AccountItems(WireModel):
    items: List[_AccountItem]


class _PositionItems(WireModel):
    items: List[Position]


class _TransactionItems(WireModel):
    items: List[Transaction]


ACCOUNTS = Endpoint("GET", "customers/me/accounts")

TransactionPage = Tuple[List[Transaction], Optional[Pagination]]


def _account_number(account: Union[Account, str]) -> str:
    number = account.account_number if isinstance(account, Account) else account
    if not number:
        raise ValueError("account number must not be empty")
    return number


def account_path(account_number: str, resource: str) -> str:
    # the number is one path segment, whatever characters it holds
    return f"accounts/{quote(account_number, safe='')}/{resource}"


def positions_endpoint(account_number: str) -> Endpoint:
    return Endpoint("GET", account_path(account_number, "positions"))


def balances_endpoint(account_number: str) -> Endpoint:
    return Endpoint("GET", account_path(account_number, "balances"))


def _wire_time(value: Union[date, datetime]) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    return value.isoformat()


def transactions_endpoint(
    account_number: str,
    start: Union[date, datetime],
    end: Union[date, datetime],
    page_offset: int = 0,
) -> Endpoint:
    params = {
        "start-date": _wire_time(start),
        "end-date": _wire_time(end),
        "page-offset": page_offset,
    }
    return Endpoint("GET", account_path(account_number, "transactions"), params=params)


# ---------- PUBLIC API: READ ----------

async def list_accounts(session: Session) -> List[Account]:
    """Accounts of the logged-in customer, in the order the server lists them."""
    data: _AccountItems = await session.api.execute(ACCOUNTS, session, shape=_AccountItems)
    accounts = []
    for item in data.items:
        account = item.account
        if item.authority_level and account.authority_level is None:
            account = account.model_copy(update={"authority_level": item.authority_level})
        accounts.append(account)
    return accounts


async def list_positions(account: Union[Account, str], session: Session) -> List[Position]:
    """Open positions of one account, in server order."""
    number = _account_number(account)
    data: _PositionItems = await session.api.execute(positions_endpoint(number), session, shape=_PositionItems)
    return list(data.items)


async def get_balances(account: Union[Account, str], session: Session) -> Balance:
    """Cash, buying power and net liquidating value of one account."""
    number = _account_number(account)
    return await session.api.execute(balances_endpoint(number), session, shape=Balance)


async def list_transactions(
    account: Union[Account, str],
    session: Session,
    start: Union[date, datetime],
    end: Union[date, datetime],
    prev_pagination: Optional[Pagination] = None,
) -> Optional[TransactionPage]:
    """
    One page of the account's transactions between start and end.

    Pass the pagination returned with the previous page to get the next one.
    Returns None, without a request, once the previous page was the last.
    Naive datetimes are taken as UTC.
    """
    number = _account_number(account)
    page_offset = 0
    if prev_pagination is not None:
        if not prev_pagination.has_next():
            return None
        page_offset = prev_pagination.page_offset + 1

    endpoint = transactions_endpoint(number, start, end, page_offset)
    data, pagination = await session.api.execute_page(endpoint, session, shape=_TransactionItems)
    return list(data.items), pagination


async def iter_transactions(
    account: Union[Account, str],
    session: Session,
    start: Union[date, datetime],
    end: Union[date, datetime],
) -> AsyncIterator[Transaction]:
    """Every transaction in the range, fetching pages one after another as needed."""
    pagination = None
    while True:
        page = await list_transactions(account, session, start, end, pagination)
        if page is None:
            return
        items, pagination = page
        for item in items:
            yield item
        if pagination is None:
            return

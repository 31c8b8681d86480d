"""Async client for the tastyworks brokerage API: session handling and read-only account data."""

from loguru import logger

from tastybroker.backend.broker.accounts import (
    get_balances,
    iter_transactions,
    list_accounts,
    list_positions,
    list_transactions,
)
from tastybroker.backend.broker.errors import (
    ApiError,
    AuthenticationFailed,
    BrokerError,
    MalformedQuantity,
    NotFound,
    RateLimited,
    SchemaMismatch,
    TransportError,
    TwoFactorRequired,
)
from tastybroker.backend.broker.session import (
    Session,
    SessionState,
    resolve,
    resolve_by_login,
    resolve_by_token,
)
from tastybroker.domain.credentials import Credential, LoginFlow, StaticToken
from tastybroker.domain.models import (
    Account,
    Balance,
    InstrumentType,
    Pagination,
    Position,
    QuantityDirection,
    Transaction,
    ValueEffect,
)
from tastybroker.domain.quantity import RationalQuantity

# silent unless the application calls infra.logging.setup_logging()
logger.disable("tastybroker")

__all__ = [
    "Account",
    "ApiError",
    "AuthenticationFailed",
    "Balance",
    "BrokerError",
    "Credential",
    "InstrumentType",
    "LoginFlow",
    "MalformedQuantity",
    "NotFound",
    "Pagination",
    "Position",
    "QuantityDirection",
    "RateLimited",
    "RationalQuantity",
    "SchemaMismatch",
    "Session",
    "SessionState",
    "StaticToken",
    "Transaction",
    "TransportError",
    "TwoFactorRequired",
    "ValueEffect",
    "get_balances",
    "iter_transactions",
    "list_accounts",
    "list_positions",
    "list_transactions",
    "resolve",
    "resolve_by_login",
    "resolve_by_token",
]

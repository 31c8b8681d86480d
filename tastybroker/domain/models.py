# tastybroker/domain/models.py
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tastybroker.domain.quantity import RationalQuantity
from tastybroker.domain.symbol import OptionSymbol, OptionType


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class WireModel(BaseModel):
    """Immutable record decoded from a kebab-case JSON payload."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=_kebab,
        populate_by_name=True,
        extra="ignore",
    )


class InstrumentType(str, Enum):
    EQUITY = "Equity"
    EQUITY_OPTION = "Equity Option"
    FUTURE = "Future"
    FUTURE_OPTION = "Future Option"
    CRYPTOCURRENCY = "Cryptocurrency"
    INDEX = "Index"
    BOND = "Bond"
    WARRANT = "Warrant"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class QuantityDirection(str, Enum):
    LONG = "Long"
    SHORT = "Short"
    ZERO = "Zero"


# Sign applied to the (unsigned) quantity the API reports.
DIRECTION_SIGN = {
    QuantityDirection.LONG: 1,
    QuantityDirection.SHORT: -1,
    QuantityDirection.ZERO: 0,
}

OPTION_INSTRUMENTS = {InstrumentType.EQUITY_OPTION, InstrumentType.FUTURE_OPTION}


class Account(WireModel):
    account_number: str
    nickname: Optional[str] = None
    account_type_name: Optional[str] = None
    margin_or_cash: Optional[str] = None
    is_closed: bool = False
    is_futures_approved: bool = False
    authority_level: Optional[str] = None


class Position(WireModel):
    """One holding of an account. Quantities stay exact end to end."""

    account_number: str
    symbol: str
    instrument_type: InstrumentType = InstrumentType.UNKNOWN
    underlying_symbol: Optional[str] = None
    quantity: RationalQuantity
    quantity_direction: QuantityDirection
    multiplier: RationalQuantity = Field(default_factory=lambda: RationalQuantity(1))
    average_open_price: Optional[RationalQuantity] = None
    close_price: Optional[RationalQuantity] = None
    expires_at: Optional[datetime] = None

    @field_validator("instrument_type", mode="before")
    @classmethod
    def _instrument_type(cls, v):
        # unknown instrument kinds must not fail the whole positions list
        return InstrumentType(v)

    @field_validator("multiplier", mode="before")
    @classmethod
    def _default_multiplier(cls, v):
        return 1 if v is None else v

    def signed_quantity(self) -> RationalQuantity:
        """Quantity with the sign of the net exposure: long > 0, short < 0."""
        return abs(self.quantity) * DIRECTION_SIGN[self.quantity_direction]

    def exposure(self) -> RationalQuantity:
        """Signed quantity scaled by the contract multiplier (shares controlled)."""
        return self.signed_quantity() * self.multiplier

    # ---------- OPTION HELPERS ----------

    @property
    def is_option(self) -> bool:
        return self.instrument_type in OPTION_INSTRUMENTS

    def option_symbol(self) -> OptionSymbol:
        if not self.is_option:
            raise ValueError(f"{self.symbol} is not an option position ({self.instrument_type.value})")
        return OptionSymbol(self.symbol)

    def strike_price(self) -> RationalQuantity:
        return self.option_symbol().strike_price()

    def expiration_date(self) -> date:
        return self.option_symbol().expiration_date()

    def option_type(self) -> OptionType:
        return self.option_symbol().option_type()

    def quote_symbol(self) -> str:
        return self.option_symbol().quote_symbol()


class UserProfile(WireModel):
    email: Optional[str] = None
    username: Optional[str] = None
    external_id: Optional[str] = None


class Pagination(WireModel):
    """Top-level paging block of list endpoints; page_offset is zero-based."""

    page_offset: int
    total_pages: int
    per_page: Optional[int] = None
    total_items: Optional[int] = None

    def has_next(self) -> bool:
        return self.page_offset + 1 < self.total_pages


class Balance(WireModel):
    """Money side of an account. Every amount is exact; absent amounts stay None."""

    account_number: str
    cash_balance: Optional[RationalQuantity] = None
    pending_cash: Optional[RationalQuantity] = None
    long_equity_value: Optional[RationalQuantity] = None
    short_equity_value: Optional[RationalQuantity] = None
    long_derivative_value: Optional[RationalQuantity] = None
    short_derivative_value: Optional[RationalQuantity] = None
    net_liquidating_value: Optional[RationalQuantity] = None
    equity_buying_power: Optional[RationalQuantity] = None
    derivative_buying_power: Optional[RationalQuantity] = None
    day_trading_buying_power: Optional[RationalQuantity] = None
    maintenance_requirement: Optional[RationalQuantity] = None
    updated_at: Optional[datetime] = None


class ValueEffect(str, Enum):
    NONE = "None"
    DEBIT = "Debit"
    CREDIT = "Credit"


# Amounts come unsigned; the effect says which way the cash moved.
EFFECT_SIGN = {
    ValueEffect.NONE: 0,
    ValueEffect.DEBIT: -1,
    ValueEffect.CREDIT: 1,
}


def signed_amount(amount: Optional[RationalQuantity], effect: Optional[ValueEffect]) -> RationalQuantity:
    if amount is None or effect is None:
        return RationalQuantity(0)
    return abs(amount) * EFFECT_SIGN[effect]


class Transaction(WireModel):
    """
    One ledger entry of an account: a trade, a receive/deliver (assignment,
    exercise, split) or a money movement. Fee fields are missing on entries
    that carry no fees.
    """

    id: int
    account_number: Optional[str] = None
    symbol: Optional[str] = None
    instrument_type: InstrumentType = InstrumentType.UNKNOWN
    underlying_symbol: Optional[str] = None
    transaction_type: str
    transaction_sub_type: Optional[str] = None
    description: Optional[str] = None
    action: Optional[str] = None
    executed_at: datetime
    quantity: Optional[RationalQuantity] = None
    price: Optional[RationalQuantity] = None
    value: Optional[RationalQuantity] = None
    value_effect: Optional[ValueEffect] = None
    commission: Optional[RationalQuantity] = None
    commission_effect: Optional[ValueEffect] = None
    clearing_fees: Optional[RationalQuantity] = None
    clearing_fees_effect: Optional[ValueEffect] = None
    regulatory_fees: Optional[RationalQuantity] = None
    regulatory_fees_effect: Optional[ValueEffect] = None
    proprietary_index_option_fees: Optional[RationalQuantity] = None
    proprietary_index_option_fees_effect: Optional[ValueEffect] = None

    @field_validator("instrument_type", mode="before")
    @classmethod
    def _instrument_type(cls, v):
        return InstrumentType(v)

    def signed_value(self) -> RationalQuantity:
        """Cash effect of the entry: credits positive, debits negative."""
        return signed_amount(self.value, self.value_effect)

    def signed_commission(self) -> RationalQuantity:
        return signed_amount(self.commission, self.commission_effect)

    def fees(self) -> RationalQuantity:
        """Signed sum of the exchange and clearing fees; commission is separate."""
        return sum(
            (
                signed_amount(self.clearing_fees, self.clearing_fees_effect),
                signed_amount(self.regulatory_fees, self.regulatory_fees_effect),
                signed_amount(self.proprietary_index_option_fees, self.proprietary_index_option_fees_effect),
            ),
            RationalQuantity(0),
        )

    def net_value(self) -> RationalQuantity:
        return self.signed_value() + self.signed_commission() + self.fees()

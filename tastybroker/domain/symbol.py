# tastybroker/domain/symbol.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from tastybroker.domain.quantity import RationalQuantity

# OCC equity option, e.g. "IQ    200918P00017500"
_EQUITY_OPTION = re.compile(
    r"(?P<root>[A-Z0-9./]{1,6})\s+(?P<date>\d{6})(?P<type>[CP])(?P<strike>\d{8})"
)
# futures option, e.g. "./NGZ0 LNEZ0 201124C4.5"
_FUTURE_OPTION = re.compile(
    r"\./(?P<future>[A-Z0-9]+)\s+(?P<root>[A-Z0-9]+)\s+(?P<date>\d{6})(?P<type>[CP])(?P<strike>\d+(?:\.\d+)?)"
)

FUTURE_EXCHANGES = {
    "/ZB": "XCBT",
    "/ZN": "XCBT",
    "/ZF": "XCBT",
    "/ZT": "XCBT",
    "/UB": "XCBT",
    "/GE": "XCME",
    "/6A": "XCME",
    "/6B": "XCME",
    "/6C": "XCME",
    "/6E": "XCME",
    "/6J": "XCME",
    "/6M": "XCME",
    "/ZC": "XCBT",
    "/ZS": "XCBT",
    "/ZW": "XCBT",
    "/HE": "XCBT",
    "/CL": "XNYM",
    "/NG": "XNYM",
    "/GC": "XCEC",
    "/SI": "XCEC",
    "/HG": "XCEC",
    "/ES": "XCME",
    "/NQ": "XCME",
    "/YM": "XCBT",
    "/RTY": "XCME",
    "/VX": "XCBF",
    "/VXM": "XCBF",
    "/BTC": "XCME",
}

# weekly roots quoted under their standard root
WEEKLY_ROOTS = {"SPXW": "SPX"}


class OptionType(str, Enum):
    CALL = "C"
    PUT = "P"


@dataclass(frozen=True)
class OptionSymbol:
    """Read-only view over an option symbol as the positions endpoint returns it."""

    text: str

    def __post_init__(self) -> None:
        if not (self._equity_match() or self._future_match()):
            raise ValueError(f"unrecognised option symbol: {self.text!r}")

    def _equity_match(self):
        return _EQUITY_OPTION.fullmatch(self.text.strip())

    def _future_match(self):
        return _FUTURE_OPTION.fullmatch(self.text.strip())

    def _parts(self) -> re.Match:
        return self._future_match() or self._equity_match()

    @property
    def is_future_option(self) -> bool:
        return self._future_match() is not None

    def underlying_symbol(self) -> str:
        root = self._parts().group("root")
        return WEEKLY_ROOTS.get(root, root)

    def expiration_date(self) -> date:
        return datetime.strptime(self._parts().group("date"), "%y%m%d").date()

    def option_type(self) -> OptionType:
        return OptionType(self._parts().group("type"))

    def strike_price(self) -> RationalQuantity:
        strike = self._parts().group("strike")
        if self.is_future_option:
            return RationalQuantity.parse(strike)
        # OCC: five integer digits, three decimals
        return RationalQuantity(int(strike), 1000)

    def future_symbol(self) -> str | None:
        match = self._future_match()
        if match is None:
            return None
        # drop month code + year digit: NGZ0 -> /NG
        return "/" + match.group("future")[:-2]

    def future_exchange(self) -> str | None:
        future = self.future_symbol()
        if future is None:
            return None
        try:
            return FUTURE_EXCHANGES[future]
        except KeyError:
            raise ValueError(f"no exchange known for future {future}") from None

    def quote_symbol(self) -> str:
        """Streamer-style symbol: ".IQ200918P17.5" or "./LNEZ20C4.5:XNYM"."""
        parts = self._parts()
        strike = self.strike_price().to_decimal_string()
        if "." in strike:
            strike = strike.rstrip("0").rstrip(".")

        if self.is_future_option:
            root = parts.group("root")
            # single year digit widened to two: LNEZ0 -> LNEZ20
            code = root[:-1] + parts.group("date")[:2]
            return f"./{code}{parts.group('type')}{strike}:{self.future_exchange()}"
        return f".{self.underlying_symbol()}{parts.group('date')}{parts.group('type')}{strike}"

    def __str__(self) -> str:
        return self.text

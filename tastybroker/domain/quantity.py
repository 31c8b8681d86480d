# tastybroker/domain/quantity.py
from __future__ import annotations

import math
import re
from decimal import Decimal
from fractions import Fraction
from functools import total_ordering
from typing import Any, Optional

from pydantic_core import core_schema

from tastybroker.backend.broker.errors import MalformedQuantity

# sign, integer digits, optional point + fractional digits
_NUMERAL = re.compile(r"([+-]?)([0-9]*)(?:\.([0-9]*))?")

# longest numeral accepted, well below the interpreter's int/str conversion limit
MAX_DIGITS = 1000


@total_ordering
class RationalQuantity:
    """
    Exact fraction for share counts, contract counts and prices.

    Always kept in lowest terms with a positive denominator. Wire values are
    parsed digit by digit, so "0.1" is exactly 1/10 and never a binary float.
    """

    __slots__ = ("_num", "_den")

    def __init__(self, numerator: int, denominator: int = 1) -> None:
        for part in (numerator, denominator):
            if isinstance(part, bool) or not isinstance(part, int):
                raise MalformedQuantity(f"quantity parts must be integers, got {part!r}")
        if denominator == 0:
            raise MalformedQuantity("quantity denominator must not be zero")
        if denominator < 0:
            numerator, denominator = -numerator, -denominator
        g = math.gcd(numerator, denominator)
        self._num = numerator // g
        self._den = denominator // g

    # ---------- CONSTRUCTION ----------

    @classmethod
    def parse(cls, text: str) -> "RationalQuantity":
        """Parse an integer or decimal numeral such as "10", "-0.5" or "12.250"."""
        if not isinstance(text, str):
            raise MalformedQuantity(f"expected a numeral string, got {text!r}")
        match = _NUMERAL.fullmatch(text.strip())
        if match is None:
            raise MalformedQuantity(f"not a decimal numeral: {text!r}")
        sign, whole, frac = match.group(1), match.group(2), match.group(3) or ""
        if not whole and not frac:
            raise MalformedQuantity(f"not a decimal numeral: {text!r}")
        if len(whole) + len(frac) > MAX_DIGITS:
            raise MalformedQuantity(f"numeral longer than {MAX_DIGITS} digits")

        scale = 10 ** len(frac)
        numerator = int(whole or "0") * scale + int(frac or "0")
        if sign == "-":
            numerator = -numerator
        return cls(numerator, scale)

    @classmethod
    def from_wire(cls, value: Any) -> "RationalQuantity":
        """
        Build from whatever the API sent: int, numeral string, Decimal,
        Fraction or a (numerator, denominator) pair. Floats are refused.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise MalformedQuantity(f"boolean is not a quantity: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, Decimal):
            return cls._from_decimal(value)
        if isinstance(value, Fraction):
            return cls(value.numerator, value.denominator)
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return cls(value[0], value[1])
        if isinstance(value, float):
            raise MalformedQuantity(f"refusing float quantity {value!r}; send it as a string")
        raise MalformedQuantity(f"unsupported quantity token {value!r} ({type(value).__name__})")

    @classmethod
    def _from_decimal(cls, value: Decimal) -> "RationalQuantity":
        if not value.is_finite():
            raise MalformedQuantity(f"not a finite quantity: {value!r}")
        sign, digits, exponent = value.as_tuple()
        # the exponent counts too: 1E+5000 expands to 5001 digits
        if len(digits) + abs(exponent) > MAX_DIGITS:
            raise MalformedQuantity(f"quantity longer than {MAX_DIGITS} digits")
        numerator = int("".join(str(d) for d in digits) or "0")
        if sign:
            numerator = -numerator
        if exponent >= 0:
            return cls(numerator * 10 ** exponent)
        return cls(numerator, 10 ** -exponent)

    # ---------- ACCESSORS ----------

    @property
    def numerator(self) -> int:
        return self._num

    @property
    def denominator(self) -> int:
        return self._den

    def is_integer(self) -> bool:
        return self._den == 1

    def to_integer(self) -> int:
        """Truncate toward zero."""
        whole = abs(self._num) // self._den
        return -whole if self._num < 0 else whole

    def to_float(self) -> float:
        """Lossy. Only for display or statistics, never for bookkeeping."""
        return self._num / self._den

    def to_fraction(self) -> Fraction:
        return Fraction(self._num, self._den)

    def to_decimal_string(self, min_places: int = 0) -> str:
        """
        Exact decimal text, padded with zeros up to min_places.
        Raises ValueError when the fraction does not terminate (e.g. 1/3).
        """
        rest, twos, fives = self._den, 0, 0
        while rest % 2 == 0:
            rest //= 2
            twos += 1
        while rest % 5 == 0:
            rest //= 5
            fives += 1
        if rest != 1:
            raise ValueError(f"{self} has no terminating decimal form")

        places = max(twos, fives, min_places)
        digits = str(abs(self._num) * 10 ** places // self._den)
        if places:
            digits = digits.rjust(places + 1, "0")
            text = f"{digits[:-places]}.{digits[-places:]}"
        else:
            text = digits
        return f"-{text}" if self._num < 0 else text

    # ---------- ARITHMETIC ----------

    @staticmethod
    def _coerce(other: Any) -> Optional["RationalQuantity"]:
        if isinstance(other, RationalQuantity):
            return other
        if isinstance(other, int) and not isinstance(other, bool):
            return RationalQuantity(other)
        return None

    def __add__(self, other: Any) -> "RationalQuantity":
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return RationalQuantity(self._num * o._den + o._num * self._den, self._den * o._den)

    __radd__ = __add__

    def __sub__(self, other: Any) -> "RationalQuantity":
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return self + (-o)

    def __rsub__(self, other: Any) -> "RationalQuantity":
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return o + (-self)

    def __mul__(self, other: Any) -> "RationalQuantity":
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return RationalQuantity(self._num * o._num, self._den * o._den)

    __rmul__ = __mul__

    def __neg__(self) -> "RationalQuantity":
        return RationalQuantity(-self._num, self._den)

    def __abs__(self) -> "RationalQuantity":
        return RationalQuantity(abs(self._num), self._den)

    def __bool__(self) -> bool:
        return self._num != 0

    # ---------- COMPARISON ----------

    def __eq__(self, other: Any) -> bool:
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return self._num == o._num and self._den == o._den

    def __lt__(self, other: Any) -> bool:
        o = self._coerce(other)
        if o is None:
            return NotImplemented
        return self._num * o._den < o._num * self._den

    def __hash__(self) -> int:
        # same hash as an equal int
        return hash(Fraction(self._num, self._den))

    def __str__(self) -> str:
        if self._den == 1:
            return str(self._num)
        return f"{self._num}/{self._den}"

    def __repr__(self) -> str:
        return f"RationalQuantity({self._num}, {self._den})"

    # ---------- PYDANTIC ----------

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.from_wire,
            serialization=core_schema.plain_serializer_function_ser_schema(_serialize),
        )


def _serialize(value: RationalQuantity) -> str:
    try:
        return value.to_decimal_string()
    except ValueError:
        return str(value)

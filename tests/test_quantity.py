"""RationalQuantity: exact parsing, arithmetic and conversions."""

from decimal import Decimal
from fractions import Fraction

import pytest

from tastybroker.backend.broker.errors import MalformedQuantity
from tastybroker.domain.quantity import MAX_DIGITS, RationalQuantity as Q


def test_parse_decimal_is_exact():
    q = Q.parse("0.333333")
    assert (q.numerator, q.denominator) == (333333, 1000000)


def test_parse_reduces_to_lowest_terms():
    q = Q.parse("12.50")
    assert (q.numerator, q.denominator) == (25, 2)


def test_parse_accepts_sign_and_whitespace():
    assert Q.parse(" -3.5 ") == Q(-7, 2)
    assert Q.parse("+4") == 4
    assert Q.parse(".25") == Q(1, 4)
    assert Q.parse("5.") == 5


@pytest.mark.parametrize("text", ["0.333333", "12.5", "-0.001", "100", "7.125", "12.50"])
def test_decimal_text_round_trip(text):
    places = len(text.split(".")[1]) if "." in text else 0
    assert Q.parse(text).to_decimal_string(places) == text


def test_no_float_drift():
    assert Q.parse("0.1") + Q.parse("0.2") == Q.parse("0.3")


@pytest.mark.parametrize("text", ["", " ", ".", "abc", "1e5", "1/2", "1,000", "nan", "--1", "1.2.3", "0x10"])
def test_parse_rejects_non_numerals(text):
    with pytest.raises(MalformedQuantity):
        Q.parse(text)


def test_canonical_form():
    q = Q(1, -2)
    assert (q.numerator, q.denominator) == (-1, 2)
    assert Q(0, 5).denominator == 1


def test_zero_denominator():
    with pytest.raises(MalformedQuantity):
        Q(1, 0)


def test_is_integer_uses_reduced_form():
    assert Q(4, 2).is_integer()
    assert Q(4, 2) == Q(2, 1)
    assert not Q(1, 2).is_integer()


def test_equality_and_hash_on_canonical_form():
    assert Q(1, 2) == Q(2, 4)
    assert hash(Q(1, 2)) == hash(Q(2, 4))
    assert Q(2) == 2
    assert hash(Q(2)) == hash(2)
    assert len({Q(1, 2), Q(2, 4), Q(3, 6)}) == 1


def test_ordering():
    values = [Q.parse("0.2"), Q(-1), Q.parse("0.1"), Q(1, 3)]
    assert sorted(values) == [Q(-1), Q(1, 10), Q(1, 5), Q(1, 3)]
    assert Q(1, 2) > 0
    assert Q(1, 2) <= Q(2, 4)


def test_arithmetic_is_exact():
    assert Q(1, 3) + Q(1, 6) == Q(1, 2)
    assert Q(1, 2) - 1 == Q(-1, 2)
    assert 1 - Q(1, 4) == Q(3, 4)
    assert Q(2, 3) * 3 == 2
    assert -Q(5, 2) == Q(-5, 2)
    assert abs(Q(-5, 2)) == Q(5, 2)


def test_mixing_with_float_is_refused():
    with pytest.raises(TypeError):
        Q(1, 2) + 0.5


def test_to_integer_truncates_toward_zero():
    assert Q(7, 2).to_integer() == 3
    assert Q(-7, 2).to_integer() == -3
    assert Q(10).to_integer() == 10


def test_to_float_only_on_request():
    assert Q(1, 4).to_float() == 0.25


def test_non_terminating_decimal_string():
    with pytest.raises(ValueError):
        Q(1, 3).to_decimal_string()


def test_str_and_repr():
    assert str(Q(3, 2)) == "3/2"
    assert str(Q(-5)) == "-5"
    assert repr(Q(3, 2)) == "RationalQuantity(3, 2)"


@pytest.mark.parametrize(
    "token, expected",
    [
        (10, Q(10)),
        ("10", Q(10)),
        ("-0.75", Q(-3, 4)),
        (Decimal("1.50"), Q(3, 2)),
        (Decimal("1E+2"), Q(100)),
        (Decimal("-0.125"), Q(-1, 8)),
        (Fraction(3, 4), Q(3, 4)),
        ([3, 4], Q(3, 4)),
        ((6, -8), Q(-3, 4)),
    ],
)
def test_from_wire(token, expected):
    assert Q.from_wire(token) == expected


def test_from_wire_passes_quantity_through():
    q = Q(1, 2)
    assert Q.from_wire(q) is q


@pytest.mark.parametrize("token", [1.5, True, None, Decimal("NaN"), Decimal("Infinity"), [1], [1.0, 2], {"n": 1}])
def test_from_wire_rejects(token):
    with pytest.raises(MalformedQuantity):
        Q.from_wire(token)


def test_longest_numeral_parses():
    q = Q.parse("9" * MAX_DIGITS)
    assert q == Q(10 ** MAX_DIGITS - 1)
    assert Q.parse("0." + "0" * (MAX_DIGITS - 2) + "1") == Q(1, 10 ** (MAX_DIGITS - 1))


@pytest.mark.parametrize("text", ["1" * 5000, "1." + "0" * MAX_DIGITS, "-" + "7" * (MAX_DIGITS + 1)])
def test_overlong_numeral_is_malformed(text):
    with pytest.raises(MalformedQuantity):
        Q.parse(text)


@pytest.mark.parametrize("token", [Decimal("1" * 5000), Decimal("1E+5000"), Decimal("1E-5000")])
def test_overlong_decimal_is_malformed(token):
    with pytest.raises(MalformedQuantity):
        Q.from_wire(token)

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, getcontext, localcontext

from mathstepper.models.expression import Number


def to_decimal(value: Number | Decimal) -> Decimal:
    """Exact decimal form of the shortest repr of ``value``."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    return Decimal(repr(value))


def as_number(value: Number | Decimal) -> Number:
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def exact_precision(*values: Number | Decimal) -> int:
    """Context precision under which sums and products of ``values`` are exact."""
    total = 0
    for value in values:
        _, digits, exponent = to_decimal(value).as_tuple()
        total += len(digits) + abs(exponent)
    return max(getcontext().prec, total + 2)


def round_half_up(value: Number | Decimal, places: int = 2) -> Number:
    decimal_value = to_decimal(value)
    with localcontext() as context:
        context.prec = max(context.prec, decimal_value.adjusted() + places + 2)
        rounded = decimal_value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return as_number(rounded)


def divide_half_up(left: Number | Decimal, right: Number | Decimal, places: int = 2) -> Number:
    """``left / right`` rounded half-up, worked out on integer ratios so nothing rounds twice."""
    left_numerator, left_denominator = to_decimal(left).as_integer_ratio()
    right_numerator, right_denominator = to_decimal(right).as_integer_ratio()
    numerator = left_numerator * right_denominator * 10**places
    denominator = left_denominator * right_numerator
    if denominator < 0:
        numerator, denominator = -numerator, -denominator

    quotient, remainder = divmod(abs(numerator), denominator)
    if 2 * remainder >= denominator:
        quotient += 1
    sign = "-" if numerator < 0 else ""
    return as_number(Decimal(f"{sign}{quotient}E-{places}"))


def format_number(value: Number | Decimal) -> str:
    """Plain positional rendering: no exponent, no trailing fractional zeros."""
    text = format(to_decimal(value), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text

"""
Money helpers.

Amounts are carried as Decimal through every computation. Rounding to the
currency's minor unit happens in format_amount only, when a value is about
to be shown to a person.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from myfinance.models.records import Currency


MINOR_UNIT_DIGITS = {
    Currency.NPR: 2,
    Currency.USD: 2,
}

CURRENCY_PREFIX = {
    Currency.NPR: "NPR ",
    Currency.USD: "$",
}

# Commas are only accepted as thousands separators: 1,234.50 but not 1,5
GROUPED_NUMBER_PATTERN = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d*)?$")


class InvalidAmountError(ValueError):
    """A numeric input was missing, non-numeric, NaN or infinite."""
    pass


def to_decimal(value, field: str = "amount") -> Decimal:
    """
    Coerce user or storage input to a finite Decimal.

    Fails fast on anything that would otherwise poison a running total.
    Floats go through str() so 0.1 stays 0.1.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"{field} must be a number, got {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        text = str(value).strip()
        if "," in text:
            if not GROUPED_NUMBER_PATTERN.match(text):
                raise InvalidAmountError(f"{field} is not a number: {value!r}")
            text = text.replace(",", "")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise InvalidAmountError(f"{field} is not a number: {value!r}")
    else:
        raise InvalidAmountError(
            f"{field} has unsupported type {type(value).__name__}"
        )

    if not result.is_finite():
        raise InvalidAmountError(f"{field} must be finite, got {value!r}")
    return result


def quantize(amount: Decimal, currency: Currency) -> Decimal:
    """Round to the currency's minor unit (half away from zero)."""
    exponent = Decimal(1).scaleb(-MINOR_UNIT_DIGITS[currency])
    return amount.quantize(exponent, rounding=ROUND_HALF_UP)


def format_amount(amount, currency: Currency) -> str:
    """
    Format an amount for display, e.g. "NPR 1,234.50" or "-$3.10".
    """
    value = quantize(to_decimal(amount), currency)
    sign = "-" if value < 0 else ""
    digits = MINOR_UNIT_DIGITS[currency]
    return f"{sign}{CURRENCY_PREFIX[currency]}{abs(value):,.{digits}f}"

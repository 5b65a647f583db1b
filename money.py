"""Fixed-point money helpers.

Amounts are stored as NUMERIC(10, 2) and travel over the API as strings such
as ``"123.45"``. Everything in between is ``decimal.Decimal``.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# NUMERIC(10, 2) leaves eight digits before the point.
MAX_AMOUNT = Decimal("99999999.99")


def parse_money(value) -> Decimal:
    """
    Parses a decimal string (or int/Decimal) into a 2-place ``Decimal``.

    Floats are accepted through their ``str`` form so ``0.1`` stays ``0.10``
    rather than the binary expansion. Raises ``ValueError`` for anything that
    is not a finite, non-negative amount that fits the column.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid amount: {value!r}") from None

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    if amount < 0:
        raise ValueError("Amount must not be negative")

    # Checked before quantize: huge values overflow the context precision.
    if amount > MAX_AMOUNT:
        raise ValueError(f"Amount exceeds {MAX_AMOUNT}")
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    return amount


def format_money(amount: Decimal) -> str:
    """Renders an amount as a plain 2-decimal string, e.g. ``"-10.00"``."""
    return str(Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP))

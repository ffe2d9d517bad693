"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Convert a number to a two-decimal money amount.

    Floats go through their string form so 0.1 stays 0.10.

    Raises:
        ValueError: If the value is not finite or has more than two decimals
    """
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid amount {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    quantized = amount.quantize(CENT)
    if quantized != amount:
        raise ValueError(f"Amount {value!r} has more than two decimal places")
    return quantized


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount typed by an operator into money.

    Handles "123.45", "Rs 1,234.50", "$1,234.56" and "(123.45)" (negative).

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount with two decimal places

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()
    is_negative = text.startswith("(") and text.endswith(")")
    if is_negative:
        text = text[1:-1]

    # Currency symbols, codes and thousands separators
    text = re.sub(r"^(rs\.?|inr|usd|eur)\s*", "", text.strip(), flags=re.IGNORECASE)
    text = re.sub(r"[$€£¥₹,\s]", "", text)

    try:
        amount = to_money(text)
    except ValueError as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    return -amount if is_negative else amount

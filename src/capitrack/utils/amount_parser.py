"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
from typing import Union
import re

AmountInput = Union[str, int, float, Decimal]

# Money columns are NUMERIC(18, 4)
MAX_INTEGER_DIGITS = 14
MAX_AMOUNT = Decimal(10) ** MAX_INTEGER_DIGITS


def _check_amount(amount: Decimal, value: AmountInput) -> Decimal:
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{value}': not a finite number")
    if abs(amount) >= MAX_AMOUNT:
        raise ValueError(
            f"Could not parse amount '{value}': more than {MAX_INTEGER_DIGITS} integer digits"
        )
    return amount


def parse_amount(value: AmountInput) -> Decimal:
    """Parse a spreadsheet amount into a Decimal.

    Handles various formats:
    - 1234.56 (numeric cells, including floats)
    - "123.45"
    - "$123.45" / "₪123.45"
    - "-123.45" / "123.45-"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Floats go through their shortest repr, so 0.1 parses as Decimal("0.1")
    rather than its binary expansion.

    Args:
        value: Amount cell value

    Returns:
        Decimal amount

    Raises:
        ValueError: If the value cannot be parsed or has more than
            MAX_INTEGER_DIGITS digits before the decimal point
    """
    if isinstance(value, bool):
        raise ValueError(f"Could not parse amount '{value}': not a number")
    if isinstance(value, Decimal):
        return _check_amount(value, value)
    if isinstance(value, (int, float)):
        return _check_amount(Decimal(str(value)), value)

    if not value or not value.strip():
        raise ValueError("Empty amount string")

    # Remove whitespace
    amount_str = value.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Trailing minus, as some exports write "1,500.00-"
    if amount_str.endswith("-"):
        is_negative = not is_negative
        amount_str = amount_str[:-1]

    # Remove currency symbols and unicode minus
    amount_str = re.sub(r"[$€£¥₪]", "", amount_str)
    amount_str = amount_str.replace("−", "-")

    # Remove thousands separators and inner whitespace
    amount_str = amount_str.replace(",", "")
    amount_str = re.sub(r"\s+", "", amount_str)

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{value}'") from e
    _check_amount(amount, value)
    if is_negative:
        amount = -amount
    return amount

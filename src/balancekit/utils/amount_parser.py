"""Amount and ratio parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

from balancekit.domain.errors import ValidationError

_CURRENCY_SYMBOLS = re.compile(r"[$€£¥]")


def _to_decimal(text: str, what: str) -> Decimal:
    cleaned = _CURRENCY_SYMBOLS.sub("", text).replace(",", "").strip()
    try:
        value = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValidationError(f"Could not parse {what} '{text}'") from e
    if not value.is_finite():
        raise ValidationError(f"Could not parse {what} '{text}'")
    return value


def parse_amount(amount_str: str) -> Decimal:
    """Parse a positive monetary amount.

    Handles "123.45", "$123.45" and "1,234.56". Entry amounts carry no
    sign, so zero and negative values are rejected.

    Raises:
        ValidationError: If the string is empty, not a number or not positive
    """
    if not amount_str or not amount_str.strip():
        raise ValidationError("Empty amount string")
    amount = _to_decimal(amount_str, "amount")
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got '{amount_str}'")
    return amount


def parse_ratio(ratio_str: str) -> Decimal:
    """Parse a split ratio such as "0.6" or "60%".

    Raises:
        ValidationError: If the ratio is not a number between 0 and 1
    """
    text = ratio_str.strip()
    if text.endswith("%"):
        ratio = _to_decimal(text[:-1], "ratio") / 100
    else:
        ratio = _to_decimal(text, "ratio")
    if not 0 < ratio <= 1:
        raise ValidationError(f"Ratio must be between 0 and 1, got '{ratio_str}'")
    return ratio

import re
from typing import Optional

_NON_DIGITS = re.compile(r"[^0-9]")


def digits_only(value: Optional[str]) -> str:
    return _NON_DIGITS.sub("", str(value or ""))


def format_price_input(raw: Optional[str]) -> str:
    """Redisplay a typed price with thousands separators ("85000" -> "85,000")."""
    digits = digits_only(raw)
    if not digits:
        return ""
    return f"{int(digits):,}"


def parse_price(value: Optional[str]) -> Optional[int]:
    digits = digits_only(value)
    if not digits:
        return None
    return int(digits)


def display_price(price: Optional[int], currency: str = "QAR") -> Optional[str]:
    if price is None:
        return None
    return f"{int(price):,} {currency}"

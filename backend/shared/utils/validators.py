"""
Input normalization helpers shared by the API and the station.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_LIKE_SPECIALS = re.compile(r"([\\%_])")


def escape_like_pattern(value: str) -> str:
    """Escape LIKE wildcards so "50%" matches literally (use with escape="\\")."""
    return _LIKE_SPECIALS.sub(r"\\\1", value) if value else value


def sanitize_search_term(term: str | None, max_length: int = 100) -> str:
    """Trimmed, truncated, control characters removed."""
    if not term:
        return ""
    return _CONTROL_CHARS.sub("", term.strip()[:max_length])


def to_money(value: Any) -> Decimal:
    """
    Two-place Decimal for a price or amount. None counts as zero.

    Floats go through str() so 0.1 stays 0.10 instead of its binary expansion.
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value.quantize(CENTS)
    try:
        return Decimal(str(value)).quantize(CENTS)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()

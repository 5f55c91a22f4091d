"""
Utilities: the error family, input normalization, order lifecycle rules
and the pydantic schemas shared by the API and the station.
"""

from shared.utils.exceptions import (
    AppException,
    ConflictError,
    NotFoundError,
    UnknownError,
    UnreachableError,
    ValidationError,
)
from shared.utils.validators import escape_like_pattern, is_blank, sanitize_search_term, to_money

__all__ = [
    "AppException",
    "ConflictError",
    "NotFoundError",
    "UnknownError",
    "UnreachableError",
    "ValidationError",
    "escape_like_pattern",
    "is_blank",
    "sanitize_search_term",
    "to_money",
]

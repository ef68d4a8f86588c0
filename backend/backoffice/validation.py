from __future__ import annotations

import enum
import math
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Type, TypeVar

from flask import current_app

from .errors import ValidationError
from .time_utils import INTERVALS, parse_range_bound


E = TypeVar("E", bound=enum.Enum)

MONEY_STEP = Decimal("0.01")
QUANTITY_STEP = Decimal("0.0001")
HUNDRED = Decimal("100")

# Numeric(15, 2) ceiling; keeps totals inside the column precision
MAX_AMOUNT = Decimal("9999999999999.99")


# =============================================================================
# NUMERIC NORMALIZATION
# =============================================================================

def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half-up (2.345 -> 2.35)."""
    return Decimal(value).quantize(MONEY_STEP, rounding=ROUND_HALF_UP)


def quantize_quantity(value: Decimal) -> Decimal:
    return Decimal(value).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Coerce a JSON number (or numeric string) to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    Booleans, NaN and infinities are rejected.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValidationError(f"{field} must be a finite number")
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")
    return result


def _exact(value: Decimal, step: Decimal, field: str) -> Decimal:
    # 5.005 is an error for a cents column, 5.000 is fine
    if value != value.quantize(step, rounding=ROUND_HALF_UP):
        places = -step.as_tuple().exponent
        raise ValidationError(f"{field} must have at most {places} decimal places")
    return value.quantize(step)


def to_money(value: Any, field: str) -> Decimal:
    """Decimal with at most two places; over-precise input is rejected, not rounded."""
    return _exact(to_decimal(value, field), MONEY_STEP, field)


def to_quantity(value: Any, field: str) -> Decimal:
    return _exact(to_decimal(value, field), QUANTITY_STEP, field)


# =============================================================================
# IDENTIFIERS, ENUMS, TEXT
# =============================================================================

def to_int_id(value: Any, field: str) -> int:
    """Ids are positive integers; numeric strings are accepted from query args."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.strip().isdigit():
        result = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer id")
    if result <= 0:
        raise ValidationError(f"{field} must be a positive integer id")
    return result


def optional_int_id(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return to_int_id(value, field)


def parse_enum(enum_cls: Type[E], value: Any, label: str) -> E:
    """Map a request string onto an enum member; unknown values are a 400."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {label}")


def optional_enum(enum_cls: Type[E], value: Any, label: str) -> E | None:
    if value is None or value == "":
        return None
    return parse_enum(enum_cls, value, label)


def optional_text(value: Any, field: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if not text:
        return None
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def require_list(value: Any, field: str, *, allow_empty: bool = True) -> list:
    if value is None:
        value = []
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list")
    if not allow_empty and not value:
        raise ValidationError(f"{field} must contain at least one entry")
    return value


def require_mapping(value: Any, field: str) -> dict:
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")
    return value


# =============================================================================
# LIST QUERIES
# =============================================================================

def parse_pagination(page: Any = None, limit: Any = None) -> tuple[int, int]:
    """Return (page, limit); defaults come from config (1 / DEFAULT_PAGE_LIMIT)."""
    default_limit = current_app.config.get("DEFAULT_PAGE_LIMIT", 10)
    max_limit = current_app.config.get("MAX_PAGE_LIMIT", 100)

    page_value = 1 if page in (None, "") else _positive_int(page, "page")
    limit_value = default_limit if limit in (None, "") else _positive_int(limit, "limit")
    if limit_value > max_limit:
        raise ValidationError(f"limit must be at most {max_limit}")
    return page_value, limit_value


def _positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def parse_date_range(start: Any, end: Any) -> tuple[datetime | None, datetime | None]:
    """Parse optional ISO-8601 start/end filters (inclusive on both ends)."""
    try:
        start_dt = parse_range_bound(start) if start else None
        end_dt = parse_range_bound(end, end=True) if end else None
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("start_date/end_date must be ISO-8601 dates")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start_date must not be after end_date")
    return start_dt, end_dt


def parse_interval(value: Any) -> str:
    interval = value or "day"
    if interval not in INTERVALS:
        raise ValidationError(f"interval must be one of {', '.join(INTERVALS)}")
    return interval

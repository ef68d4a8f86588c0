# Overview: Response envelopes shared by the services and the HTTP layer.

from __future__ import annotations

import math
import uuid
from typing import Any

from .errors import LedgerError
from .time_utils import to_utc_z, utcnow


EMPTY_MESSAGE = "OK, But its empty"


def base_response(message: str) -> dict:
    return {
        "message": message,
        "requested_at": to_utc_z(utcnow()),
        "request_id": str(uuid.uuid4()),
    }


def data_response(message: str, data: Any) -> dict:
    body = base_response(message)
    body["data"] = data
    return body


def paginated_response(items: list, *, page: int, limit: int, total_items: int) -> dict:
    """
    List envelope. An empty page is still a successful answer, only the
    message changes.
    """
    body = base_response(EMPTY_MESSAGE if not items else "OK")
    body["meta"] = {
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total_items / limit) if limit else 0,
        "total_items": total_items,
    }
    body["items"] = items
    return body


def error_response(exc: LedgerError) -> tuple[dict, int]:
    return base_response(exc.message), exc.status_code


def to_number(value) -> float | None:
    """Numeric column value -> JSON number (Decimal is not JSON-native)."""
    if value is None:
        return None
    return float(value)

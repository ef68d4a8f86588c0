# Overview: Typed ledger errors; the HTTP layer maps `status_code`, the core only raises.

from __future__ import annotations

import enum
from decimal import Decimal


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    OVERPAYMENT = "OVERPAYMENT"
    UNEXPECTED = "UNEXPECTED"


class LedgerError(Exception):
    """Base class for every error the ledger core raises on purpose."""

    kind = ErrorKind.UNEXPECTED
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LedgerError):
    """A referenced id does not resolve to a live record."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ValidationError(LedgerError, ValueError):
    """400-level input problem."""

    kind = ErrorKind.VALIDATION
    status_code = 400


class InsufficientStockError(LedgerError):
    """A SELL or manual adjustment would drive a ledger balance below zero."""

    kind = ErrorKind.INSUFFICIENT_STOCK
    status_code = 400

    def __init__(self, product_name: str, available: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Available: {_plain(available)}, Requested: {_plain(requested)}"
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class OverpaymentError(LedgerError):
    """An inflow payment would push the paid total past the grand total."""

    kind = ErrorKind.OVERPAYMENT
    status_code = 400

    def __init__(self, remaining: Decimal):
        super().__init__(
            f"Payment amount exceeds remaining balance. Remaining: {_plain(remaining)}"
        )
        self.remaining = remaining


class UnexpectedError(LedgerError):
    """Storage or other failure the caller cannot fix; details go to the log."""


def _plain(value: Decimal) -> str:
    # 7.0000 -> "7", 2.50 -> "2.5"
    return format(Decimal(value).normalize(), "f")

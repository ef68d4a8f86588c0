# Overview: Closed value sets for the ledger; request strings are parsed into these once.

from __future__ import annotations

import enum


class TransactionType(str, enum.Enum):
    SELL = "SELL"
    BUY = "BUY"


class TransactionStatus(str, enum.Enum):
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


class DiscountType(str, enum.Enum):
    TOTAL_FIXED = "TOTAL_FIXED"
    TOTAL_PERCENTAGE = "TOTAL_PERCENTAGE"
    ITEM_FIXED = "ITEM_FIXED"
    ITEM_PERCENTAGE = "ITEM_PERCENTAGE"

    @property
    def is_item_level(self) -> bool:
        return self in (DiscountType.ITEM_FIXED, DiscountType.ITEM_PERCENTAGE)

    @property
    def is_percentage(self) -> bool:
        return self in (DiscountType.TOTAL_PERCENTAGE, DiscountType.ITEM_PERCENTAGE)


class PaymentType(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"
    QRIS = "QRIS"
    PAPER = "PAPER"


class PaymentDirection(str, enum.Enum):
    INFLOW = "INFLOW"
    OUTFLOW = "OUTFLOW"


class ProductType(str, enum.Enum):
    SELLABLE = "SELLABLE"
    ASSET = "ASSET"
    UTILITY = "UTILITY"
    PLACEHOLDER = "PLACEHOLDER"

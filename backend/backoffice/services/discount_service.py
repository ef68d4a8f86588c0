# Overview: Discount calculator; resolves requested discount lines to money amounts.

"""
Discount resolution.

Pure functions: nothing here touches the session. The transaction engine
parses the request with `parse_discount_lines`, resolves it with
`calculate_discounts` and persists the result itself.

Rules:
- TOTAL_FIXED       amount = value
- TOTAL_PERCENTAGE  amount = subtotal * value / 100
- ITEM_FIXED        amount = value, attributed to items[item_index]
- ITEM_PERCENTAGE   amount = items[item_index].total * value / 100

Fixed amounts are capped by validation, never clamped: asking for more than
the subtotal (or the item's total) is an error rather than a silent cut.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence

from ..enums import DiscountType
from ..errors import ValidationError
from ..validation import (
    HUNDRED,
    parse_enum,
    quantize_money,
    require_list,
    require_mapping,
    to_decimal,
    to_money,
)


@dataclass(frozen=True)
class DiscountLine:
    type: DiscountType
    value: Decimal
    item_index: int | None = None

    @property
    def percentage(self) -> Decimal | None:
        return self.value if self.type.is_percentage else None


@dataclass(frozen=True)
class ResolvedDiscount:
    type: DiscountType
    percentage: Decimal | None
    amount: Decimal
    item_index: int | None


@dataclass(frozen=True)
class DiscountResult:
    total: Decimal
    discounts: list[ResolvedDiscount]


def parse_discount_lines(raw: Any) -> list[DiscountLine]:
    """
    Turn request discount entries into typed lines.

    Each entry: {"type", "amount"? (fixed types), "percentage"? (percentage
    types), "transaction_item_index"? (item types)}.
    """
    lines = []
    for position, entry in enumerate(require_list(raw, "discounts")):
        entry = require_mapping(entry, f"discounts[{position}]")
        discount_type = parse_enum(DiscountType, entry.get("type"), "discount type")

        field = "percentage" if discount_type.is_percentage else "amount"
        if entry.get(field) is None:
            raise ValidationError(f"{field} is required for {discount_type.value} discount")
        if discount_type.is_percentage:
            value = to_decimal(entry[field], f"discounts[{position}].{field}")
        else:
            value = to_money(entry[field], f"discounts[{position}].{field}")

        item_index = None
        if discount_type.is_item_level:
            item_index = entry.get("transaction_item_index")
            if item_index is None:
                raise ValidationError(f"transaction_item_index is required for {discount_type.value} discount")
            if isinstance(item_index, bool) or not isinstance(item_index, int):
                raise ValidationError("transaction_item_index must be an integer")

        lines.append(DiscountLine(type=discount_type, value=value, item_index=item_index))
    return lines


def calculate_discounts(
    subtotal: Decimal,
    item_totals: Sequence[Decimal],
    lines: Sequence[DiscountLine],
) -> DiscountResult:
    """Resolve every line against the subtotal / item totals and sum them."""
    resolved = []
    total = Decimal("0")

    for line in lines:
        if line.value < 0:
            raise ValidationError("Discount value must not be negative")
        if line.type.is_percentage and line.value > HUNDRED:
            raise ValidationError("Discount percentage must not exceed 100")

        if line.type.is_item_level:
            if line.item_index is None or not 0 <= line.item_index < len(item_totals):
                raise ValidationError("Invalid transaction item index for discount")
            base = Decimal(item_totals[line.item_index])
        else:
            base = Decimal(subtotal)

        if line.type.is_percentage:
            amount = quantize_money(base * line.value / HUNDRED)
        else:
            amount = quantize_money(line.value)
            if amount > base:
                target = "item total" if line.type.is_item_level else "subtotal"
                raise ValidationError(f"{line.type.value} discount exceeds the {target}")

        total += amount
        resolved.append(
            ResolvedDiscount(
                type=line.type,
                percentage=line.percentage,
                amount=amount,
                item_index=line.item_index,
            )
        )

    if total > subtotal:
        raise ValidationError("Total discount exceeds the subtotal")

    return DiscountResult(total=total, discounts=resolved)

# Overview: Tax calculator; flat percentage taxes over the post-discount subtotal.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence

from ..models import Tax
from ..validation import HUNDRED, quantize_money, require_list, to_int_id
from .catalog_service import get_live_taxes


@dataclass(frozen=True)
class AppliedTax:
    tax_id: int
    name: str
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class TaxResult:
    total: Decimal
    lines: list[AppliedTax]


def parse_tax_ids(raw: Any) -> list[int]:
    return [to_int_id(value, "taxes[]") for value in require_list(raw, "taxes")]


def calculate_tax(base: Decimal, taxes: Sequence[Tax]) -> TaxResult:
    """
    Apply each rate to the same base and sum.

    No compounding: a 10 % and a 5 % tax on 100 give 15, not 15.5.
    """
    lines = []
    for tax in taxes:
        rate = Decimal(tax.value)
        lines.append(
            AppliedTax(
                tax_id=tax.id,
                name=tax.name,
                rate=rate,
                amount=quantize_money(Decimal(base) * rate / HUNDRED),
            )
        )
    total = sum((line.amount for line in lines), Decimal("0"))
    return TaxResult(total=total, lines=lines)


def compute_total_tax(base: Decimal, tax_ids: Sequence[int]) -> TaxResult:
    """Resolve the ids (NotFoundError on any miss) and calculate."""
    return calculate_tax(base, get_live_taxes(list(tax_ids)))

# Overview: Service-layer operations for the inventory ledger; encapsulates business logic and database work.

"""
Inventory ledger invariants (authoritative)

Ledger model:
- Stock is ledger-derived from InventoryHistory rows; no table stores a
  mutable quantity.
- The balance of a (product, unit) pair is SUM(quantity) over its rows.
- Rows are append-only: never updated, never deleted.

Business invariants:
- A balance may never go below zero. Every write that removes stock
  (SELL transaction lines, negative manual adjustments) checks the current
  balance first, inside the same database transaction that appends the row.
- The check-then-append runs with the product row locked FOR UPDATE, so two
  writers cannot both pass the check on the same stock (on databases that
  honour row locks).
- Several deltas for the same pair inside one batch are checked
  cumulatively.

Time semantics:
- created_at is UTC-naive; filters are inclusive on both ends.
- Time series report a running total per bucket (opening balance + prefix
  sum of bucket deltas), not per-bucket deltas.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any

from flask import current_app
from sqlalchemy import func

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryHistory, Product, UnitQuantity
from ..responses import paginated_response, to_number
from ..time_utils import bucket_start, to_utc_z, utcnow
from ..validation import (
    optional_int_id,
    optional_text,
    parse_date_range,
    parse_interval,
    parse_pagination,
    quantize_quantity,
    require_list,
    require_mapping,
    to_int_id,
    to_quantity,
)
from .catalog_service import get_live_product, get_live_unit_quantity
from .concurrency import run_atomic


StockKey = tuple[int, int]


def stock_key(item: dict) -> StockKey:
    """(product_id, unit_quantity_id); the order product rows are locked in."""
    return item["product_id"], item["unit_quantity_id"]


def _as_quantity(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return quantize_quantity(Decimal(str(value)))


# =============================================================================
# BALANCES
# =============================================================================

def get_total_quantity(product_id: int, unit_quantity_id: int) -> Decimal:
    """Current balance of a (product, unit) pair: the sum of its ledger rows."""
    total = db.session.query(
        func.coalesce(func.sum(InventoryHistory.quantity), 0)
    ).filter(
        InventoryHistory.product_id == product_id,
        InventoryHistory.unit_quantity_id == unit_quantity_id,
    ).scalar()
    return _as_quantity(total)


def check_stock_delta(
    product: Product,
    unit_quantity_id: int,
    delta: Decimal,
    pending: dict[StockKey, Decimal],
) -> None:
    """
    Reject a delta that would take the balance below zero.

    `pending` holds deltas already accepted earlier in the same batch (not
    yet visible to the SUM) and is updated when this one passes. Callers
    must hold the product row lock.
    """
    key = (product.id, unit_quantity_id)
    available = get_total_quantity(product.id, unit_quantity_id) + pending.get(key, Decimal("0"))
    if available + delta < 0:
        current_app.logger.warning(
            "Rejected stock movement for product %s unit %s: available=%s delta=%s",
            product.id, unit_quantity_id, available, delta,
        )
        raise InsufficientStockError(product.name, available, abs(delta))
    pending[key] = pending.get(key, Decimal("0")) + delta


def append_ledger_entry(
    *,
    product_id: int,
    unit_quantity_id: int,
    quantity: Decimal,
    remark: str | None,
    actor_id: int,
) -> InventoryHistory:
    """Append one signed row. No checks, no commit: the caller owns both."""
    entry = InventoryHistory(
        product_id=product_id,
        unit_quantity_id=unit_quantity_id,
        quantity=quantity,
        remark=remark,
        created_at=utcnow(),
        created_by=actor_id,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


# =============================================================================
# MANUAL ADJUSTMENTS
# =============================================================================

def manipulate_inventory(payload: dict, actor_id: int) -> list[dict]:
    """
    Apply a batch of manual stock adjustments.

    payload: {"items": [{"product_id", "unit_quantity_id", "quantity", "remark"?}],
              "remark"?}

    Positive quantity adds stock, negative removes it. Every item is
    validated and balance-checked before anything is written; one failing
    item aborts the whole batch.
    """
    payload = require_mapping(payload, "request body")
    raw_items = require_list(payload.get("items"), "items", allow_empty=False)
    batch_remark = optional_text(payload.get("remark"), "remark")

    parsed = []
    for position, raw in enumerate(raw_items):
        raw = require_mapping(raw, f"items[{position}]")
        quantity = to_quantity(raw.get("quantity"), f"items[{position}].quantity")
        if quantity == 0:
            raise ValidationError(f"items[{position}].quantity must not be zero")
        parsed.append(
            {
                "product_id": to_int_id(raw.get("product_id"), f"items[{position}].product_id"),
                "unit_quantity_id": to_int_id(raw.get("unit_quantity_id"), f"items[{position}].unit_quantity_id"),
                "quantity": quantity,
                "remark": optional_text(raw.get("remark"), f"items[{position}].remark") or batch_remark,
            }
        )

    def _op():
        pending: dict[StockKey, Decimal] = {}
        for item in sorted(parsed, key=stock_key):
            product = get_live_product(item["product_id"], lock=True)
            get_live_unit_quantity(item["unit_quantity_id"])
            check_stock_delta(product, item["unit_quantity_id"], item["quantity"], pending)

        return [
            append_ledger_entry(
                product_id=item["product_id"],
                unit_quantity_id=item["unit_quantity_id"],
                quantity=item["quantity"],
                remark=item["remark"],
                actor_id=actor_id,
            )
            for item in parsed
        ]

    entries = run_atomic(_op)
    current_app.logger.info(
        "Inventory manipulated by user %s: %d ledger rows", actor_id, len(entries)
    )
    return [entry.to_dict() for entry in entries]


# =============================================================================
# READS
# =============================================================================

def get_inventory_history(history_id: Any) -> dict:
    history_id = to_int_id(history_id, "id")
    entry = db.session.get(InventoryHistory, history_id)
    if entry is None:
        raise NotFoundError("Inventory history not found")
    return entry.to_dict()


def get_inventory_histories(
    *,
    page: Any = None,
    limit: Any = None,
    product_id: Any = None,
    unit_quantity_id: Any = None,
    start_date: Any = None,
    end_date: Any = None,
) -> dict:
    """Ledger rows, newest first, with the standard pagination envelope."""
    page, limit = parse_pagination(page, limit)
    product_id = optional_int_id(product_id, "product_id")
    unit_quantity_id = optional_int_id(unit_quantity_id, "unit_quantity_id")
    start_dt, end_dt = parse_date_range(start_date, end_date)

    query = db.session.query(InventoryHistory)
    if product_id is not None:
        query = query.filter(InventoryHistory.product_id == product_id)
    if unit_quantity_id is not None:
        query = query.filter(InventoryHistory.unit_quantity_id == unit_quantity_id)
    if start_dt:
        query = query.filter(InventoryHistory.created_at >= start_dt)
    if end_dt:
        query = query.filter(InventoryHistory.created_at <= end_dt)

    result = query.order_by(
        InventoryHistory.created_at.desc(),
        InventoryHistory.id.desc(),
    ).paginate(page=page, per_page=limit, error_out=False)

    return paginated_response(
        [entry.to_dict() for entry in result.items],
        page=page,
        limit=limit,
        total_items=result.total or 0,
    )


def get_inventory_summary(product_id: Any = None) -> list[dict]:
    """
    Balances grouped by product.

    Only live products and units with a non-zero balance appear; pairs that
    were never touched (or netted back to zero) are left out.
    """
    product_id = optional_int_id(product_id, "product_id")

    total = func.sum(InventoryHistory.quantity)
    query = db.session.query(
        Product.id.label("product_id"),
        Product.name.label("product_name"),
        UnitQuantity.id.label("unit_quantity_id"),
        UnitQuantity.name.label("unit_quantity_name"),
        total.label("total_quantity"),
    ).join(
        InventoryHistory, InventoryHistory.product_id == Product.id
    ).join(
        UnitQuantity, UnitQuantity.id == InventoryHistory.unit_quantity_id
    ).filter(
        Product.deleted_at.is_(None),
        UnitQuantity.deleted_at.is_(None),
    )
    if product_id is not None:
        query = query.filter(Product.id == product_id)

    rows = query.group_by(
        Product.id, Product.name, UnitQuantity.id, UnitQuantity.name
    ).having(
        total != 0
    ).order_by(
        Product.name.asc(), UnitQuantity.name.asc()
    ).all()

    products: OrderedDict[int, dict] = OrderedDict()
    for row in rows:
        quantity = _as_quantity(row.total_quantity)
        # float residue from SUM on SQLite can survive the HAVING clause
        if quantity == 0:
            continue
        summary = products.setdefault(
            row.product_id,
            {
                "product_id": row.product_id,
                "product_name": row.product_name,
                "quantities": [],
            },
        )
        summary["quantities"].append(
            {
                "unit_quantity_id": row.unit_quantity_id,
                "unit_quantity_name": row.unit_quantity_name,
                "total_quantity": to_number(quantity),
            }
        )
    return list(products.values())


def get_inventory_time_series(
    product_id: Any,
    *,
    unit_quantity_id: Any = None,
    start_date: Any = None,
    end_date: Any = None,
    interval: Any = "day",
) -> list[dict]:
    """
    Running stock balance per bucket, one series per unit.

    Each point's total_quantity = opening balance (rows before start_date)
    + sum of all bucket deltas up to and including that bucket. Computed as
    one ordered scan with an accumulator.
    """
    if product_id in (None, ""):
        raise ValidationError("product_id is required")
    product = get_live_product(to_int_id(product_id, "product_id"))
    unit_quantity_id = optional_int_id(unit_quantity_id, "unit_quantity_id")
    if unit_quantity_id is not None:
        get_live_unit_quantity(unit_quantity_id)
    start_dt, end_dt = parse_date_range(start_date, end_date)
    interval = parse_interval(interval)

    base = db.session.query(InventoryHistory).filter(InventoryHistory.product_id == product.id)
    if unit_quantity_id is not None:
        base = base.filter(InventoryHistory.unit_quantity_id == unit_quantity_id)

    opening: dict[int, Decimal] = {}
    if start_dt:
        opening_rows = base.with_entities(
            InventoryHistory.unit_quantity_id,
            func.sum(InventoryHistory.quantity),
        ).filter(
            InventoryHistory.created_at < start_dt
        ).group_by(InventoryHistory.unit_quantity_id).all()
        opening = {unit_id: _as_quantity(amount) for unit_id, amount in opening_rows}

    window = base.with_entities(
        InventoryHistory.unit_quantity_id,
        InventoryHistory.created_at,
        InventoryHistory.quantity,
    )
    if start_dt:
        window = window.filter(InventoryHistory.created_at >= start_dt)
    if end_dt:
        window = window.filter(InventoryHistory.created_at <= end_dt)

    # unit -> bucket -> net delta, buckets in time order
    deltas: dict[int, OrderedDict[datetime, Decimal]] = {}
    for unit_id, created_at, quantity in window.order_by(
        InventoryHistory.created_at.asc(), InventoryHistory.id.asc()
    ):
        buckets = deltas.setdefault(unit_id, OrderedDict())
        key = bucket_start(created_at, interval)
        buckets[key] = buckets.get(key, Decimal("0")) + _as_quantity(quantity)

    unit_ids = set(deltas)
    if unit_quantity_id is not None:
        unit_ids.add(unit_quantity_id)
    units = {
        unit.id: unit
        for unit in db.session.query(UnitQuantity).filter(UnitQuantity.id.in_(unit_ids)).all()
    } if unit_ids else {}

    series = []
    for unit_id in sorted(unit_ids, key=lambda uid: (units[uid].name if uid in units else "", uid)):
        running = opening.get(unit_id, Decimal("0"))
        points = []
        for bucket, delta in deltas.get(unit_id, OrderedDict()).items():
            running += delta
            points.append({"date": to_utc_z(bucket), "total_quantity": to_number(running)})
        series.append(
            {
                "product_id": product.id,
                "product_name": product.name,
                "unit_quantity_id": unit_id,
                "unit_quantity_name": units[unit_id].name if unit_id in units else None,
                "data": points,
            }
        )
    return series

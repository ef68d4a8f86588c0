# Overview: Service-layer operations for transactions; creation, reads and aggregate reports.

"""
Transaction engine.

create_transaction turns a request into one atomic write:
    Transaction (UNPAID) -> TransactionItems -> Discounts -> InventoryHistory

Totals are always computed here, never taken from the request:
    subtotal     = sum(item.quantity * item.price_per_unit)
    total_tax    = sum(taxes over (subtotal - total_discount))
    grand_total  = subtotal - total_discount + total_tax

SELL lines take stock out (-quantity), BUY lines put it in (+quantity).
SELL lines are balance-checked against the ledger under the product row lock
before anything is written.
"""

from __future__ import annotations

from collections import OrderedDict
from decimal import Decimal
from typing import Any

from flask import current_app
from sqlalchemy import case, func

from ..enums import TransactionStatus, TransactionType
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Discount, Product, Transaction, TransactionItem
from ..responses import paginated_response, to_number
from ..time_utils import bucket_start, to_utc_z, utcnow
from ..validation import (
    optional_enum,
    optional_int_id,
    optional_text,
    parse_date_range,
    parse_enum,
    parse_interval,
    parse_pagination,
    quantize_money,
    quantize_quantity,
    require_list,
    require_mapping,
    to_int_id,
    to_money,
    to_quantity,
)
from .catalog_service import get_live_customer, get_live_product, get_live_unit_quantity
from .concurrency import run_atomic
from .discount_service import calculate_discounts, parse_discount_lines
from .inventory_service import append_ledger_entry, check_stock_delta, stock_key
from .tax_service import compute_total_tax, parse_tax_ids


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return quantize_money(Decimal(str(value)))


def _parse_items(raw_items: Any) -> list[dict]:
    items = []
    for position, raw in enumerate(require_list(raw_items, "items", allow_empty=False)):
        raw = require_mapping(raw, f"items[{position}]")
        quantity = to_quantity(raw.get("quantity"), f"items[{position}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{position}].quantity must be greater than zero")
        price = to_money(raw.get("price_per_unit"), f"items[{position}].price_per_unit")
        if price < 0:
            raise ValidationError(f"items[{position}].price_per_unit must not be negative")
        items.append(
            {
                "product_id": to_int_id(raw.get("product_id"), f"items[{position}].product_id"),
                "unit_quantity_id": to_int_id(raw.get("unit_quantity_id"), f"items[{position}].unit_quantity_id"),
                "quantity": quantity,
                "price_per_unit": price,
                "total": quantize_money(quantity * price),
                "remark": optional_text(raw.get("remark"), f"items[{position}].remark"),
            }
        )
    return items


# =============================================================================
# CREATE
# =============================================================================

def create_transaction(payload: dict, actor_id: int) -> dict:
    """
    Validate, price and persist a SELL or BUY transaction with its ledger rows.

    payload keys: type, customer_id?, items[], discounts[]?, taxes[]? (tax ids),
    remark?, file_id?
    """
    payload = require_mapping(payload, "request body")
    transaction_type = parse_enum(TransactionType, payload.get("type"), "transaction type")
    customer_id = optional_int_id(payload.get("customer_id"), "customer_id")
    items = _parse_items(payload.get("items"))
    discount_lines = parse_discount_lines(payload.get("discounts"))
    tax_ids = parse_tax_ids(payload.get("taxes"))
    remark = optional_text(payload.get("remark"), "remark")
    file_id = optional_int_id(payload.get("file_id"), "file_id")

    is_sell = transaction_type is TransactionType.SELL

    def _op():
        if customer_id is not None:
            get_live_customer(customer_id)

        pending: dict = {}
        # Lock in key order so concurrent writers cannot deadlock on each other
        for item in sorted(items, key=stock_key):
            product = get_live_product(item["product_id"], lock=is_sell)
            get_live_unit_quantity(item["unit_quantity_id"])
            if is_sell:
                check_stock_delta(product, item["unit_quantity_id"], -item["quantity"], pending)

        subtotal = sum((item["total"] for item in items), Decimal("0"))
        discounts = calculate_discounts(subtotal, [item["total"] for item in items], discount_lines)
        taxes = compute_total_tax(subtotal - discounts.total, tax_ids)
        grand_total = quantize_money(subtotal - discounts.total + taxes.total)

        transaction = Transaction(
            customer_id=customer_id,
            type=transaction_type.value,
            status=TransactionStatus.UNPAID.value,
            subtotal=subtotal,
            total_tax=taxes.total,
            grand_total=grand_total,
            remark=remark,
            file_id=file_id,
            created_at=utcnow(),
            created_by=actor_id,
        )
        db.session.add(transaction)
        db.session.flush()

        rows = []
        for item in items:
            row = TransactionItem(
                transaction_id=transaction.id,
                product_id=item["product_id"],
                unit_quantity_id=item["unit_quantity_id"],
                quantity=item["quantity"],
                price_per_unit=item["price_per_unit"],
                total=item["total"],
                remark=item["remark"],
            )
            db.session.add(row)
            rows.append(row)
        db.session.flush()

        for resolved in discounts.discounts:
            db.session.add(
                Discount(
                    transaction_id=transaction.id,
                    type=resolved.type.value,
                    percentage=resolved.percentage,
                    amount=resolved.amount,
                    transaction_item_id=rows[resolved.item_index].id if resolved.item_index is not None else None,
                )
            )

        for item in items:
            append_ledger_entry(
                product_id=item["product_id"],
                unit_quantity_id=item["unit_quantity_id"],
                quantity=-item["quantity"] if is_sell else item["quantity"],
                remark=f"Transaction {transaction.id}",
                actor_id=actor_id,
            )
        return transaction

    transaction = run_atomic(_op)
    current_app.logger.info(
        "Transaction %s created by user %s: type=%s grand_total=%s",
        transaction.id, actor_id, transaction.type, transaction.grand_total,
    )
    return transaction.to_dict()


# =============================================================================
# READS
# =============================================================================

def get_transaction(transaction_id: Any) -> dict:
    transaction_id = to_int_id(transaction_id, "id")
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction.to_dict()


def get_transactions(
    *,
    page: Any = None,
    limit: Any = None,
    type: Any = None,
    status: Any = None,
    customer_id: Any = None,
    start_date: Any = None,
    end_date: Any = None,
) -> dict:
    page, limit = parse_pagination(page, limit)
    transaction_type = optional_enum(TransactionType, type, "transaction type")
    status = optional_enum(TransactionStatus, status, "transaction status")
    customer_id = optional_int_id(customer_id, "customer_id")
    start_dt, end_dt = parse_date_range(start_date, end_date)

    query = db.session.query(Transaction)
    if transaction_type:
        query = query.filter(Transaction.type == transaction_type.value)
    if status:
        query = query.filter(Transaction.status == status.value)
    if customer_id is not None:
        query = query.filter(Transaction.customer_id == customer_id)
    if start_dt:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.created_at <= end_dt)

    result = query.order_by(
        Transaction.created_at.desc(),
        Transaction.id.desc(),
    ).paginate(page=page, per_page=limit, error_out=False)

    return paginated_response(
        [transaction.to_dict() for transaction in result.items],
        page=page,
        limit=limit,
        total_items=result.total or 0,
    )


# =============================================================================
# REPORTS
# =============================================================================

def _in_range(query, column, start_dt, end_dt):
    if start_dt:
        query = query.filter(column >= start_dt)
    if end_dt:
        query = query.filter(column <= end_dt)
    return query


def sum_grand_totals(start_dt=None, end_dt=None) -> dict[str, tuple[Decimal, int]]:
    """{type: (sum of grand_total, count)} over an already-parsed range."""
    query = db.session.query(
        Transaction.type,
        func.coalesce(func.sum(Transaction.grand_total), 0),
        func.count(Transaction.id),
    )
    query = _in_range(query, Transaction.created_at, start_dt, end_dt)
    return {
        row_type: (_money(total), count)
        for row_type, total, count in query.group_by(Transaction.type).all()
    }


def get_transaction_summary(start_date: Any = None, end_date: Any = None) -> dict:
    """Revenue (SELL grand totals), expenses (BUY grand totals) and their difference."""
    start_dt, end_dt = parse_date_range(start_date, end_date)
    totals = sum_grand_totals(start_dt, end_dt)

    revenue, sell_count = totals.get(TransactionType.SELL.value, (Decimal("0"), 0))
    expenses, buy_count = totals.get(TransactionType.BUY.value, (Decimal("0"), 0))
    return {
        "total_revenue": to_number(revenue),
        "total_expenses": to_number(expenses),
        "net_income": to_number(revenue - expenses),
        "transaction_count": sell_count + buy_count,
    }


def get_product_transaction_summary(
    product_id: Any = None,
    start_date: Any = None,
    end_date: Any = None,
) -> list[dict]:
    """
    Per-product trading totals from item lines.

    Products whose traded total is zero are left out. Ordered by net income,
    highest first.
    """
    product_id = optional_int_id(product_id, "product_id")
    start_dt, end_dt = parse_date_range(start_date, end_date)

    is_sell = Transaction.type == TransactionType.SELL.value
    is_buy = Transaction.type == TransactionType.BUY.value
    query = db.session.query(
        Product.id,
        Product.name,
        func.coalesce(func.sum(case((is_sell, TransactionItem.total), else_=0)), 0),
        func.coalesce(func.sum(case((is_buy, TransactionItem.total), else_=0)), 0),
        func.coalesce(func.sum(case((is_sell, TransactionItem.quantity), else_=0)), 0),
        func.coalesce(func.sum(case((is_buy, TransactionItem.quantity), else_=0)), 0),
    ).join(
        TransactionItem, TransactionItem.product_id == Product.id
    ).join(
        Transaction, Transaction.id == TransactionItem.transaction_id
    ).filter(Product.deleted_at.is_(None))
    if product_id is not None:
        query = query.filter(Product.id == product_id)
    query = _in_range(query, Transaction.created_at, start_dt, end_dt)

    rows = query.group_by(Product.id, Product.name).having(
        func.sum(TransactionItem.total) != 0
    ).all()

    summaries = []
    for pid, name, revenue, expenses, sold, bought in rows:
        revenue, expenses = _money(revenue), _money(expenses)
        summaries.append(
            {
                "product_id": pid,
                "product_name": name,
                "revenue": to_number(revenue),
                "expenses": to_number(expenses),
                "net_income": to_number(revenue - expenses),
                "quantity_sold": to_number(quantize_quantity(Decimal(str(sold)))),
                "quantity_bought": to_number(quantize_quantity(Decimal(str(bought)))),
            }
        )
    summaries.sort(key=lambda s: (-s["net_income"], s["product_name"]))
    return summaries


def get_transaction_time_series(
    start_date: Any = None,
    end_date: Any = None,
    interval: Any = "day",
    product_id: Any = None,
) -> list[dict]:
    """
    Revenue / expenses per bucket, ascending.

    Without a product the amounts are grand totals; with one they are that
    product's item totals, and the counts are the transactions that contain it.
    """
    start_dt, end_dt = parse_date_range(start_date, end_date)
    interval = parse_interval(interval)
    product_id = optional_int_id(product_id, "product_id")

    if product_id is None:
        query = db.session.query(
            Transaction.id, Transaction.created_at, Transaction.type, Transaction.grand_total
        )
    else:
        get_live_product(product_id)
        query = db.session.query(
            Transaction.id, Transaction.created_at, Transaction.type, TransactionItem.total
        ).join(
            TransactionItem, TransactionItem.transaction_id == Transaction.id
        ).filter(TransactionItem.product_id == product_id)
    query = _in_range(query, Transaction.created_at, start_dt, end_dt)

    buckets: OrderedDict = OrderedDict()
    for transaction_id, created_at, transaction_type, amount in query.order_by(
        Transaction.created_at.asc(), Transaction.id.asc()
    ):
        bucket = buckets.setdefault(
            bucket_start(created_at, interval),
            {"revenue": Decimal("0"), "expenses": Decimal("0"), "sell": set(), "buy": set()},
        )
        if transaction_type == TransactionType.SELL.value:
            bucket["revenue"] += _money(amount)
            bucket["sell"].add(transaction_id)
        else:
            bucket["expenses"] += _money(amount)
            bucket["buy"].add(transaction_id)

    return [
        {
            "date": to_utc_z(key),
            "revenue": to_number(values["revenue"]),
            "expenses": to_number(values["expenses"]),
            "net_income": to_number(values["revenue"] - values["expenses"]),
            "sell_count": len(values["sell"]),
            "buy_count": len(values["buy"]),
        }
        for key, values in buckets.items()
    ]

# Overview: Read-only finance and payment dashboards built from transactions and payments.

from __future__ import annotations

from collections import OrderedDict
from decimal import Decimal
from typing import Any

from sqlalchemy import func

from ..enums import PaymentDirection, TransactionType
from ..extensions import db
from ..models import Customer, Payment, Transaction
from ..responses import to_number
from ..time_utils import bucket_start, to_utc_z
from ..validation import parse_date_range, quantize_money
from .payment_service import signed_amount_expr
from .transaction_service import sum_grand_totals


ANONYMOUS_CUSTOMER = "Anonymous"


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return quantize_money(Decimal(str(value)))


def _payments_in_range(query, start_dt, end_dt):
    if start_dt:
        query = query.filter(Payment.created_at >= start_dt)
    if end_dt:
        query = query.filter(Payment.created_at <= end_dt)
    return query


def _signed_total_for(transaction_type: TransactionType, start_dt, end_dt) -> Decimal:
    query = db.session.query(
        func.coalesce(func.sum(signed_amount_expr()), 0)
    ).join(
        Transaction, Transaction.id == Payment.transaction_id
    ).filter(Transaction.type == transaction_type.value)
    return _money(_payments_in_range(query, start_dt, end_dt).scalar())


def get_finance_dashboard(start_date: Any = None, end_date: Any = None) -> dict:
    """
    Gross sales, cash flow and outstanding balances over one date range.

    Transactions are windowed by their created_at, payments by theirs.
    """
    start_dt, end_dt = parse_date_range(start_date, end_date)

    totals = sum_grand_totals(start_dt, end_dt)
    revenue = totals.get(TransactionType.SELL.value, (Decimal("0"), 0))[0]
    expenses = totals.get(TransactionType.BUY.value, (Decimal("0"), 0))[0]

    flows = _payments_in_range(
        db.session.query(Payment.direction, func.coalesce(func.sum(Payment.amount), 0)),
        start_dt,
        end_dt,
    ).group_by(Payment.direction).all()
    by_direction = {direction: _money(total) for direction, total in flows}
    inflow = by_direction.get(PaymentDirection.INFLOW.value, Decimal("0"))
    outflow = by_direction.get(PaymentDirection.OUTFLOW.value, Decimal("0"))

    # SELL payments are mostly positive (money in), BUY payments mostly negative
    received = _signed_total_for(TransactionType.SELL, start_dt, end_dt)
    paid_out = -_signed_total_for(TransactionType.BUY, start_dt, end_dt)
    receivable = revenue - received
    payable = expenses - paid_out

    return {
        "gross_sales": {
            "total_revenue": to_number(revenue),
            "total_expenses": to_number(expenses),
            "net_income": to_number(revenue - expenses),
        },
        "cashflow_report": {
            "inflow": to_number(inflow),
            "outflow": to_number(outflow),
            "net_cash_flow": to_number(inflow - outflow),
        },
        "outstanding_balance": {
            "accounts_receivable": to_number(receivable),
            "accounts_payable": to_number(payable),
            "net_working_capital": to_number(receivable - payable),
        },
    }


def get_payment_dashboard(start_date: Any = None, end_date: Any = None) -> dict:
    """
    Per-customer payable/receivable and a daily history.

    payable is the signed sum of payments on BUY transactions, receivable the
    signed sum on SELL transactions. Payments without a transaction (or whose
    transaction has no customer) land on the Anonymous row.
    """
    start_dt, end_dt = parse_date_range(start_date, end_date)

    query = db.session.query(
        Payment.created_at,
        Payment.direction,
        Payment.amount,
        Transaction.type,
        Customer.id,
        Customer.name,
    ).outerjoin(
        Transaction, Transaction.id == Payment.transaction_id
    ).outerjoin(
        Customer, Customer.id == Transaction.customer_id
    )
    query = _payments_in_range(query, start_dt, end_dt)

    customers: dict = {}
    history: OrderedDict = OrderedDict()
    for created_at, direction, amount, transaction_type, customer_id, customer_name in query.order_by(
        Payment.created_at.asc(), Payment.id.asc()
    ):
        signed = _money(amount)
        if direction == PaymentDirection.OUTFLOW.value:
            signed = -signed

        summary = customers.setdefault(
            customer_id,
            {
                "customer_id": customer_id,
                "customer_name": customer_name or ANONYMOUS_CUSTOMER,
                "payable": Decimal("0"),
                "receivable": Decimal("0"),
            },
        )
        point = history.setdefault(
            bucket_start(created_at, "day"),
            {"payable": Decimal("0"), "receivable": Decimal("0")},
        )

        if transaction_type == TransactionType.BUY.value:
            summary["payable"] += signed
            point["payable"] += signed
        elif transaction_type == TransactionType.SELL.value:
            summary["receivable"] += signed
            point["receivable"] += signed

    customer_summaries = [
        {
            "customer_id": summary["customer_id"],
            "customer_name": summary["customer_name"],
            "payable": to_number(summary["payable"]),
            "receivable": to_number(summary["receivable"]),
        }
        for summary in sorted(customers.values(), key=lambda s: (s["customer_name"], s["customer_id"] or 0))
    ]
    historical_data = [
        {
            "date": to_utc_z(day),
            "payable": to_number(point["payable"]),
            "receivable": to_number(point["receivable"]),
            "net": to_number(point["receivable"] - point["payable"]),
        }
        for day, point in history.items()
    ]
    return {
        "customer_summaries": customer_summaries,
        "historical_data": historical_data,
    }

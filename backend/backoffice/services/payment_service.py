# Overview: Service-layer operations for payments; recording money movements and deriving transaction status.

"""
Payment engine.

Sign convention: Payment.amount is stored absolute; Payment.direction says
which way the money went. INFLOW counts +amount, OUTFLOW counts -amount.
The total paid on a transaction is the signed sum of its payments.

Status after a payment (new_total = prior signed total + this payment):
    SELL: PAID            if new_total >= grand_total
          PARTIALLY_PAID  if 0 < new_total < grand_total
          UNPAID          otherwise (a full refund goes back to UNPAID)
    BUY:  PAID            if new_total <= grand_total
          PARTIALLY_PAID  if new_total < 0
          unchanged       otherwise

An INFLOW that pushes new_total above grand_total is an overpayment and is
rejected with the remaining balance.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from flask import current_app
from sqlalchemy import case, func

from ..enums import PaymentDirection, PaymentType, TransactionStatus, TransactionType
from ..errors import NotFoundError, OverpaymentError, ValidationError
from ..extensions import db
from ..models import Payment, PaymentDetail, Transaction
from ..responses import paginated_response
from ..time_utils import utcnow
from ..validation import (
    optional_enum,
    optional_int_id,
    optional_text,
    parse_date_range,
    parse_enum,
    parse_pagination,
    quantize_money,
    require_list,
    require_mapping,
    to_int_id,
    to_money,
)
from .concurrency import lock_for_update, run_atomic


def signed_amount_expr():
    """SQL expression for +amount / -amount by direction."""
    return case(
        (Payment.direction == PaymentDirection.OUTFLOW.value, -Payment.amount),
        else_=Payment.amount,
    )


def get_total_paid(transaction_id: int) -> Decimal:
    total = db.session.query(
        func.coalesce(func.sum(signed_amount_expr()), 0)
    ).filter(Payment.transaction_id == transaction_id).scalar()
    return quantize_money(Decimal(str(total)))


def derive_transaction_status(
    transaction_type: str,
    total_paid: Decimal,
    grand_total: Decimal,
    current_status: str,
) -> str:
    if transaction_type == TransactionType.SELL.value:
        if total_paid >= grand_total:
            return TransactionStatus.PAID.value
        if total_paid > 0:
            return TransactionStatus.PARTIALLY_PAID.value
        return TransactionStatus.UNPAID.value

    # BUY keeps its status when neither rule matches
    if total_paid <= grand_total:
        return TransactionStatus.PAID.value
    if total_paid < 0:
        return TransactionStatus.PARTIALLY_PAID.value
    return current_status


def _parse_details(raw: Any) -> list[tuple[str, str]]:
    details = []
    for position, entry in enumerate(require_list(raw, "details")):
        entry = require_mapping(entry, f"details[{position}]")
        identifier = optional_text(entry.get("identifier"), f"details[{position}].identifier", max_length=255)
        if identifier is None:
            raise ValidationError(f"details[{position}].identifier is required")
        value = entry.get("value")
        if value is None or isinstance(value, (dict, list)):
            raise ValidationError(f"details[{position}].value is required")
        details.append((identifier, str(value)))
    return details


# =============================================================================
# CREATE
# =============================================================================

def create_payment(payload: dict, actor_id: int) -> dict:
    """
    Record a payment, optionally against a transaction, and move that
    transaction's status.

    payload keys: type, direction? (default INFLOW), amount (> 0),
    transaction_id?, details[]? ({identifier, value}), remark?, file_id?
    """
    payload = require_mapping(payload, "request body")
    payment_type = parse_enum(PaymentType, payload.get("type"), "payment type")
    direction = optional_enum(PaymentDirection, payload.get("direction"), "payment direction") or PaymentDirection.INFLOW
    amount = to_money(payload.get("amount"), "amount")
    if amount <= 0:
        raise ValidationError("amount must be greater than zero")
    transaction_id = optional_int_id(payload.get("transaction_id"), "transaction_id")
    details = _parse_details(payload.get("details"))
    remark = optional_text(payload.get("remark"), "remark")
    file_id = optional_int_id(payload.get("file_id"), "file_id")

    signed = -amount if direction is PaymentDirection.OUTFLOW else amount

    def _op():
        transaction = None
        previous_status = None
        if transaction_id is not None:
            transaction = lock_for_update(
                db.session.query(Transaction).filter(Transaction.id == transaction_id)
            ).first()
            if transaction is None:
                raise NotFoundError("Transaction not found")

            grand_total = Decimal(transaction.grand_total)
            prior_total = get_total_paid(transaction.id)
            new_total = prior_total + signed

            if direction is PaymentDirection.INFLOW and new_total > grand_total:
                current_app.logger.warning(
                    "Rejected overpayment on transaction %s: prior=%s amount=%s grand_total=%s",
                    transaction.id, prior_total, amount, grand_total,
                )
                raise OverpaymentError(grand_total - prior_total)

            previous_status = transaction.status
            new_status = derive_transaction_status(
                transaction.type, new_total, grand_total, transaction.status
            )
            if new_status != transaction.status:
                transaction.status = new_status

        payment = Payment(
            transaction_id=transaction_id,
            type=payment_type.value,
            direction=direction.value,
            amount=amount,
            remark=remark,
            file_id=file_id,
            created_at=utcnow(),
            created_by=actor_id,
        )
        db.session.add(payment)
        db.session.flush()

        for identifier, value in details:
            db.session.add(PaymentDetail(payment_id=payment.id, identifier=identifier, value=value))

        return payment, transaction, previous_status

    payment, transaction, previous_status = run_atomic(_op)

    result = payment.to_dict()
    if transaction is not None:
        result["transaction_status"] = transaction.status
        current_app.logger.info(
            "Payment %s recorded by user %s on transaction %s: %s %s, status %s -> %s",
            payment.id, actor_id, transaction.id, payment.direction, payment.amount,
            previous_status, transaction.status,
        )
    else:
        current_app.logger.info(
            "Payment %s recorded by user %s: %s %s",
            payment.id, actor_id, payment.direction, payment.amount,
        )
    return result


# =============================================================================
# READS
# =============================================================================

def get_payment(payment_id: Any) -> dict:
    payment_id = to_int_id(payment_id, "id")
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment.to_dict()


def get_payments(
    *,
    page: Any = None,
    limit: Any = None,
    type: Any = None,
    direction: Any = None,
    transaction_id: Any = None,
    start_date: Any = None,
    end_date: Any = None,
) -> dict:
    page, limit = parse_pagination(page, limit)
    payment_type = optional_enum(PaymentType, type, "payment type")
    direction = optional_enum(PaymentDirection, direction, "payment direction")
    transaction_id = optional_int_id(transaction_id, "transaction_id")
    start_dt, end_dt = parse_date_range(start_date, end_date)

    query = db.session.query(Payment)
    if payment_type:
        query = query.filter(Payment.type == payment_type.value)
    if direction:
        query = query.filter(Payment.direction == direction.value)
    if transaction_id is not None:
        query = query.filter(Payment.transaction_id == transaction_id)
    if start_dt:
        query = query.filter(Payment.created_at >= start_dt)
    if end_dt:
        query = query.filter(Payment.created_at <= end_dt)

    result = query.order_by(
        Payment.created_at.desc(),
        Payment.id.desc(),
    ).paginate(page=page, per_page=limit, error_out=False)

    return paginated_response(
        [payment.to_dict() for payment in result.items],
        page=page,
        limit=limit,
        total_items=result.total or 0,
    )

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..responses import to_number
from ..time_utils import to_utc_z


class Payment(db.Model):
    """
    Money movement, optionally applied to a transaction.

    `amount` is stored absolute and `direction` carries the sign:
    INFLOW counts +amount, OUTFLOW counts -amount. Every summation over
    payments goes through that rule (see `signed_amount`).
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint(
            "type IN ('CASH', 'CARD', 'TRANSFER', 'QRIS', 'PAPER')",
            name="ck_payments_type",
        ),
        db.CheckConstraint("direction IN ('INFLOW', 'OUTFLOW')", name="ck_payments_direction"),
        db.CheckConstraint("amount > 0", name="ck_payments_amount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    direction = db.Column(db.String(10), nullable=False, default="INFLOW", index=True)
    amount = db.Column(db.Numeric(15, 2), nullable=False)

    remark = db.Column(db.Text, nullable=True)
    file_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    transaction = db.relationship("Transaction", backref=db.backref("payments", lazy=True))
    creator = db.relationship("User", foreign_keys=[created_by])
    details = db.relationship("PaymentDetail", backref="payment", order_by="PaymentDetail.id", lazy=True)

    @property
    def signed_amount(self) -> Decimal:
        amount = Decimal(self.amount)
        return -amount if self.direction == "OUTFLOW" else amount

    def __repr__(self) -> str:
        return f"<Payment id={self.id} transaction_id={self.transaction_id} {self.direction} {self.amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "type": self.type,
            "direction": self.direction,
            "amount": to_number(self.amount),
            "signed_amount": to_number(self.signed_amount),
            "details": [detail.to_dict() for detail in self.details],
            "remark": self.remark,
            "file_id": self.file_id,
            "created_at": to_utc_z(self.created_at),
            "created_by": self.created_by,
            "created_by_name": self.creator.name if self.creator else None,
        }


class PaymentDetail(db.Model):
    """Free-form key/value attached to a payment (card last digits, transfer reference)."""
    __tablename__ = "payment_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False, index=True)
    identifier = db.Column(db.String(255), nullable=False)
    value = db.Column(db.Text, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "identifier": self.identifier,
            "value": self.value,
        }

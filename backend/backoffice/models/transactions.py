from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..responses import to_number
from ..time_utils import to_utc_z


class Transaction(db.Model):
    """
    SELL or BUY document.

    Totals are computed server-side at creation and never edited:
        grand_total = subtotal - total_discount + total_tax
    where total_discount is the sum of the attached Discount rows. The only
    column that changes afterwards is `status`, driven by payments.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_type_created", "type", "created_at"),
        db.CheckConstraint("type IN ('SELL', 'BUY')", name="ck_transactions_type"),
        db.CheckConstraint(
            "status IN ('UNPAID', 'PARTIALLY_PAID', 'PAID')",
            name="ck_transactions_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)

    subtotal = db.Column(db.Numeric(15, 2), nullable=False)
    total_tax = db.Column(db.Numeric(15, 2), nullable=False)
    grand_total = db.Column(db.Numeric(15, 2), nullable=False)

    remark = db.Column(db.Text, nullable=True)
    # Opaque reference into the file store
    file_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    customer = db.relationship("Customer")
    creator = db.relationship("User", foreign_keys=[created_by])
    items = db.relationship(
        "TransactionItem",
        backref="transaction",
        order_by="TransactionItem.id",
        lazy=True,
    )
    discounts = db.relationship(
        "Discount",
        backref="transaction",
        order_by="Discount.id",
        lazy=True,
    )

    @property
    def total_discount(self) -> Decimal:
        return sum((Decimal(d.amount) for d in self.discounts), Decimal("0"))

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type} status={self.status} grand_total={self.grand_total}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "items": [item.to_dict() for item in self.items],
            "discounts": [discount.to_dict() for discount in self.discounts],
            "subtotal": to_number(self.subtotal),
            "total_discount": to_number(self.total_discount),
            "total_tax": to_number(self.total_tax),
            "grand_total": to_number(self.grand_total),
            "type": self.type,
            "status": self.status,
            "remark": self.remark,
            "file_id": self.file_id,
            "created_at": to_utc_z(self.created_at),
            "created_by": self.created_by,
            "created_by_name": self.creator.name if self.creator else None,
        }


class TransactionItem(db.Model):
    """Line of a transaction. Quantity is stored positive; the ledger entry carries the sign."""
    __tablename__ = "transaction_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transaction_items_quantity"),
        db.CheckConstraint("price_per_unit >= 0", name="ck_transaction_items_price"),
        db.CheckConstraint("total >= 0", name="ck_transaction_items_total"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    unit_quantity_id = db.Column(db.Integer, db.ForeignKey("unit_quantities.id"), nullable=False)

    quantity = db.Column(db.Numeric(15, 4), nullable=False)
    price_per_unit = db.Column(db.Numeric(15, 2), nullable=False)
    total = db.Column(db.Numeric(15, 2), nullable=False)
    remark = db.Column(db.Text, nullable=True)

    product = db.relationship("Product")
    unit_quantity = db.relationship("UnitQuantity")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": to_number(self.quantity),
            "unit_quantity_id": self.unit_quantity_id,
            "unit_quantity_name": self.unit_quantity.name if self.unit_quantity else None,
            "price_per_unit": to_number(self.price_per_unit),
            "total": to_number(self.total),
            "remark": self.remark,
        }


class Discount(db.Model):
    """
    Resolved discount line.

    `amount` is always the absolute money value taken off; `percentage` is
    kept for display on percentage types. ITEM_* discounts point at a line
    of the same transaction.
    """
    __tablename__ = "discounts"
    __table_args__ = (
        db.CheckConstraint(
            "type IN ('TOTAL_FIXED', 'TOTAL_PERCENTAGE', 'ITEM_FIXED', 'ITEM_PERCENTAGE')",
            name="ck_discounts_type",
        ),
        db.CheckConstraint("amount >= 0", name="ck_discounts_amount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False)
    percentage = db.Column(db.Numeric(5, 2), nullable=True)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    transaction_item_id = db.Column(db.Integer, db.ForeignKey("transaction_items.id"), nullable=True, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "percentage": to_number(self.percentage),
            "amount": to_number(self.amount),
            "transaction_item_id": self.transaction_item_id,
        }

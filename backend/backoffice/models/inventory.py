from __future__ import annotations

from ..extensions import db
from ..responses import to_number
from ..time_utils import to_utc_z


class InventoryHistory(db.Model):
    """
    Append-only stock ledger row.

    Negative quantity takes stock out, positive puts it in. The balance of a
    (product, unit) pair is SUM(quantity) over its rows; nothing else stores
    stock. Rows are never updated or deleted.
    """
    __tablename__ = "inventory_histories"
    __table_args__ = (
        db.Index("ix_inventory_histories_product_unit", "product_id", "unit_quantity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    unit_quantity_id = db.Column(db.Integer, db.ForeignKey("unit_quantities.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(15, 4), nullable=False)
    remark = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    product = db.relationship("Product")
    unit_quantity = db.relationship("UnitQuantity")
    creator = db.relationship("User", foreign_keys=[created_by])

    def __repr__(self) -> str:
        return (
            f"<InventoryHistory id={self.id} product_id={self.product_id} "
            f"unit_quantity_id={self.unit_quantity_id} quantity={self.quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": to_number(self.quantity),
            "unit_quantity_id": self.unit_quantity_id,
            "unit_quantity_name": self.unit_quantity.name if self.unit_quantity else None,
            "remark": self.remark,
            "created_at": to_utc_z(self.created_at),
            "created_by": self.created_by,
            "created_by_name": self.creator.name if self.creator else None,
        }

# Overview: Lookups of live (non-deleted) catalogue records used by the ledger engines.

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, Product, Tax, UnitQuantity, User
from .concurrency import lock_for_update


def get_live_product(product_id: int, *, lock: bool = False) -> Product:
    """
    Resolve a product that has not been soft-deleted.

    lock=True takes the row with SELECT ... FOR UPDATE; stock checks use it
    as the exclusive lock on the product's ledger for the rest of the
    database transaction.
    """
    query = db.session.query(Product).filter(
        Product.id == product_id,
        Product.deleted_at.is_(None),
    )
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError(f"Product not found: {product_id}")
    return product


def get_live_unit_quantity(unit_quantity_id: int) -> UnitQuantity:
    unit = db.session.query(UnitQuantity).filter(
        UnitQuantity.id == unit_quantity_id,
        UnitQuantity.deleted_at.is_(None),
    ).first()
    if unit is None:
        raise NotFoundError(f"Unit quantity not found: {unit_quantity_id}")
    return unit


def get_live_customer(customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter(
        Customer.id == customer_id,
        Customer.deleted_at.is_(None),
    ).first()
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def get_live_taxes(tax_ids: list[int]) -> list[Tax]:
    """Resolve every id (order preserved, duplicates collapsed); any miss is a 404."""
    unique_ids = list(dict.fromkeys(tax_ids))
    if not unique_ids:
        return []

    rows = db.session.query(Tax).filter(
        Tax.id.in_(unique_ids),
        Tax.deleted_at.is_(None),
    ).all()
    by_id = {tax.id: tax for tax in rows}

    missing = [tax_id for tax_id in unique_ids if tax_id not in by_id]
    if missing:
        raise NotFoundError(f"Tax not found: {', '.join(str(m) for m in missing)}")
    return [by_id[tax_id] for tax_id in unique_ids]


def get_active_user(user_id: int) -> User | None:
    """Actor lookup for the HTTP layer; None when the user cannot act."""
    return db.session.query(User).filter(
        User.id == user_id,
        User.deleted_at.is_(None),
        User.is_active.is_(True),
    ).first()

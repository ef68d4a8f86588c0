"""
Inventory ledger tests.

Covers balance derivation, manual adjustments (including batch-level
non-negativity), the summary grouping and the running-total time series.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from backoffice.errors import InsufficientStockError, NotFoundError, ValidationError
from backoffice.models import InventoryHistory
from backoffice.responses import EMPTY_MESSAGE
from backoffice.services import inventory_service
from backoffice.time_utils import utcnow


def _row_count(db_session) -> int:
    return db_session.query(InventoryHistory).count()


def test_total_quantity_is_the_sum_of_rows(db_session, product, unit, add_stock):
    assert inventory_service.get_total_quantity(product.id, unit.id) == Decimal("0")

    add_stock(product, unit, 10)
    add_stock(product, unit, -3)
    add_stock(product, unit, "0.5")

    assert inventory_service.get_total_quantity(product.id, unit.id) == Decimal("7.5")


def test_balances_are_per_unit(db_session, product, unit, box_unit, add_stock):
    add_stock(product, unit, 10)
    add_stock(product, box_unit, 2)

    assert inventory_service.get_total_quantity(product.id, unit.id) == Decimal("10")
    assert inventory_service.get_total_quantity(product.id, box_unit.id) == Decimal("2")


def test_manipulate_appends_one_row_per_item(db_session, user, product, unit, add_stock):
    add_stock(product, unit, 5)

    rows = inventory_service.manipulate_inventory(
        {
            "items": [
                {"product_id": product.id, "unit_quantity_id": unit.id, "quantity": -2, "remark": "broken"},
                {"product_id": product.id, "unit_quantity_id": unit.id, "quantity": 4},
            ],
            "remark": "stock take",
        },
        actor_id=user.id,
    )

    assert [row["quantity"] for row in rows] == [-2.0, 4.0]
    assert [row["remark"] for row in rows] == ["broken", "stock take"]
    assert rows[0]["created_by"] == user.id
    assert inventory_service.get_total_quantity(product.id, unit.id) == Decimal("7")


def test_manipulate_rejects_negative_balance(db_session, user, product, unit, add_stock):
    add_stock(product, unit, 3)
    before = _row_count(db_session)

    with pytest.raises(InsufficientStockError) as exc:
        inventory_service.manipulate_inventory(
            {"items": [{"product_id": product.id, "unit_quantity_id": unit.id, "quantity": -4}]},
            actor_id=user.id,
        )

    assert exc.value.message == "Insufficient stock for Widget. Available: 3, Requested: 4"
    assert _row_count(db_session) == before


def test_manipulate_checks_repeated_keys_cumulatively(db_session, user, product, unit, add_stock):
    add_stock(product, unit, 5)
    before = _row_count(db_session)

    with pytest.raises(InsufficientStockError) as exc:
        inventory_service.manipulate_inventory(
            {
                "items": [
                    {"product_id": product.id, "unit_quantity_id": unit.id, "quantity": -3},
                    {"product_id": product.id, "unit_quantity_id": unit.id, "quantity": -3},
                ]
            },
            actor_id=user.id,
        )

    assert exc.value.available == Decimal("2")
    assert _row_count(db_session) == before
    assert inventory_service.get_total_quantity(product.id, unit.id) == Decimal("5")


def test_manipulate_validation(db_session, user, product, unit):
    with pytest.raises(ValidationError):
        inventory_service.manipulate_inventory({"items": []}, actor_id=user.id)

    with pytest.raises(ValidationError):
        inventory_service.manipulate_inventory(
            {"items": [{"product_id": product.id, "unit_quantity_id": unit.id, "quantity": 0}]},
            actor_id=user.id,
        )

    with pytest.raises(ValidationError):
        inventory_service.manipulate_inventory(
            {"items": [{"product_id": product.id, "unit_quantity_id": unit.id, "quantity": True}]},
            actor_id=user.id,
        )

    with pytest.raises(ValidationError) as exc:
        inventory_service.manipulate_inventory(
            {"items": [{"product_id": product.id, "unit_quantity_id": unit.id, "quantity": 0.00001}]},
            actor_id=user.id,
        )
    assert exc.value.message == "items[0].quantity must have at most 4 decimal places"
    assert _row_count(db_session) == 0


def test_manipulate_locks_products_in_id_order(db_session, user, product, other_product, unit, monkeypatch):
    locked = []
    original = inventory_service.get_live_product

    def _recording(product_id, *, lock=False):
        if lock:
            locked.append(product_id)
        return original(product_id, lock=lock)

    monkeypatch.setattr(inventory_service, "get_live_product", _recording)

    rows = inventory_service.manipulate_inventory(
        {
            "items": [
                {"product_id": other_product.id, "unit_quantity_id": unit.id, "quantity": 2},
                {"product_id": product.id, "unit_quantity_id": unit.id, "quantity": 4},
            ]
        },
        actor_id=user.id,
    )

    assert locked == sorted([product.id, other_product.id])
    assert [row["product_id"] for row in rows] == [other_product.id, product.id]


def test_manipulate_unknown_product(db_session, user, unit):
    with pytest.raises(NotFoundError):
        inventory_service.manipulate_inventory(
            {"items": [{"product_id": 404, "unit_quantity_id": unit.id, "quantity": 1}]},
            actor_id=user.id,
        )
    assert _row_count(db_session) == 0


def test_manipulate_deleted_unit(db_session, user, product, unit):
    unit.deleted_at = utcnow()
    db_session.commit()

    with pytest.raises(NotFoundError):
        inventory_service.manipulate_inventory(
            {"items": [{"product_id": product.id, "unit_quantity_id": unit.id, "quantity": 1}]},
            actor_id=user.id,
        )


def test_summary_groups_units_under_products(
    db_session, product, other_product, unit, box_unit, add_stock
):
    add_stock(product, unit, 10)
    add_stock(product, box_unit, 2)
    add_stock(other_product, unit, 4)
    add_stock(other_product, unit, -4)

    summary = inventory_service.get_inventory_summary()

    assert summary == [
        {
            "product_id": product.id,
            "product_name": "Widget",
            "quantities": [
                {"unit_quantity_id": box_unit.id, "unit_quantity_name": "box", "total_quantity": 2.0},
                {"unit_quantity_id": unit.id, "unit_quantity_name": "pcs", "total_quantity": 10.0},
            ],
        }
    ]


def test_summary_filters_and_skips_deleted_products(
    db_session, product, other_product, unit, add_stock
):
    add_stock(product, unit, 10)
    add_stock(other_product, unit, 1)

    only = inventory_service.get_inventory_summary(product_id=str(other_product.id))
    assert [s["product_id"] for s in only] == [other_product.id]

    product.deleted_at = utcnow()
    db_session.commit()
    assert [s["product_id"] for s in inventory_service.get_inventory_summary()] == [other_product.id]


def test_time_series_is_a_running_total(db_session, product, unit, add_stock):
    add_stock(product, unit, 10, at=datetime(2026, 3, 1, 9, 0))
    add_stock(product, unit, -3, at=datetime(2026, 3, 2, 10, 0))
    add_stock(product, unit, -2, at=datetime(2026, 3, 2, 15, 0))
    add_stock(product, unit, 5, at=datetime(2026, 3, 4, 8, 0))

    series = inventory_service.get_inventory_time_series(
        product.id, start_date="2026-03-02", end_date="2026-03-31"
    )

    assert len(series) == 1
    assert series[0]["unit_quantity_id"] == unit.id
    assert series[0]["data"] == [
        {"date": "2026-03-02T00:00:00Z", "total_quantity": 5.0},
        {"date": "2026-03-04T00:00:00Z", "total_quantity": 10.0},
    ]


def test_time_series_month_buckets_without_range(db_session, product, unit, box_unit, add_stock):
    add_stock(product, unit, 10, at=datetime(2026, 1, 15))
    add_stock(product, unit, -4, at=datetime(2026, 2, 3))
    add_stock(product, box_unit, 1, at=datetime(2026, 2, 20))

    series = inventory_service.get_inventory_time_series(product.id, interval="month")

    by_unit = {s["unit_quantity_name"]: s["data"] for s in series}
    assert by_unit["pcs"] == [
        {"date": "2026-01-01T00:00:00Z", "total_quantity": 10.0},
        {"date": "2026-02-01T00:00:00Z", "total_quantity": 6.0},
    ]
    assert by_unit["box"] == [{"date": "2026-02-01T00:00:00Z", "total_quantity": 1.0}]


def test_time_series_validation(db_session, product):
    with pytest.raises(ValidationError):
        inventory_service.get_inventory_time_series(None)
    with pytest.raises(ValidationError):
        inventory_service.get_inventory_time_series(product.id, interval="hour")
    with pytest.raises(ValidationError):
        inventory_service.get_inventory_time_series(product.id, start_date="2026-03-05", end_date="2026-03-01")
    with pytest.raises(NotFoundError):
        inventory_service.get_inventory_time_series(999)


def test_histories_are_paginated_newest_first(db_session, product, unit, add_stock):
    first = add_stock(product, unit, 1, at=datetime(2026, 3, 1))
    add_stock(product, unit, 2, at=datetime(2026, 3, 2))
    last = add_stock(product, unit, 3, at=datetime(2026, 3, 3))

    page_one = inventory_service.get_inventory_histories(page=1, limit=2)
    assert page_one["message"] == "OK"
    assert page_one["meta"] == {"page": 1, "limit": 2, "total_pages": 2, "total_items": 3}
    assert page_one["items"][0]["id"] == last.id

    page_two = inventory_service.get_inventory_histories(page="2", limit="2")
    assert [item["id"] for item in page_two["items"]] == [first.id]

    empty = inventory_service.get_inventory_histories(page=5, limit=2)
    assert empty["message"] == EMPTY_MESSAGE
    assert empty["items"] == []


def test_histories_filters(db_session, product, other_product, unit, add_stock):
    add_stock(product, unit, 1, at=datetime(2026, 3, 1, 12))
    add_stock(other_product, unit, 2, at=datetime(2026, 3, 1, 13))
    add_stock(product, unit, 3, at=datetime(2026, 4, 1))

    result = inventory_service.get_inventory_histories(
        product_id=product.id, start_date="2026-03-01", end_date="2026-03-01"
    )
    assert [item["quantity"] for item in result["items"]] == [1.0]


def test_get_inventory_history(db_session, product, unit, add_stock):
    entry = add_stock(product, unit, 2)

    assert inventory_service.get_inventory_history(entry.id)["product_name"] == "Widget"
    with pytest.raises(NotFoundError):
        inventory_service.get_inventory_history(entry.id + 100)

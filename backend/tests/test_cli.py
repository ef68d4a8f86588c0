from decimal import Decimal

from backoffice.models import Product, Tax, UnitQuantity, User
from backoffice.services import inventory_service


def test_seed_demo_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["catalog", "seed-demo"])
    second = runner.invoke(args=["catalog", "seed-demo"])

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    assert "CREATE" not in second.output
    assert db_session.query(User).count() == 1
    assert db_session.query(Product).count() == 1
    assert db_session.query(UnitQuantity).count() == 1
    assert db_session.query(Tax).one().value == Decimal("8")


def test_inventory_adjust_and_summary(app, db_session, user, product, unit):
    runner = app.test_cli_runner()

    added = runner.invoke(args=[
        "inventory", "adjust", str(product.id), str(unit.id), "5", "--user-id", str(user.id),
    ])
    removed = runner.invoke(args=[
        "inventory", "adjust", str(product.id), str(unit.id), "-2", "--user-id", str(user.id),
        "--remark", "broken",
    ])

    assert added.exit_code == 0, added.output
    assert removed.exit_code == 0, removed.output
    assert inventory_service.get_total_quantity(product.id, unit.id) == Decimal("3")

    summary = runner.invoke(args=["inventory", "summary"])
    assert "Widget" in summary.output
    assert "pcs" in summary.output


def test_inventory_adjust_rejects_negative_balance(app, db_session, user, product, unit):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "inventory", "adjust", str(product.id), str(unit.id), "-1", "--user-id", str(user.id),
    ])

    assert result.exit_code != 0
    assert "Insufficient stock for Widget" in result.output

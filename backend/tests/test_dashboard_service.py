from datetime import datetime

import pytest

from conftest import sell_payload
from backoffice.models import Payment
from backoffice.services import dashboard_service, payment_service, transaction_service


@pytest.fixture
def activity(db_session, user, customer, product, unit, add_stock):
    """
    Budi buys 15 worth and pays 10; an anonymous BUY of 40 is paid 30;
    one standalone inflow of 5 has no transaction.
    """
    add_stock(product, unit, 10)
    sale = transaction_service.create_transaction(
        sell_payload(product, unit, 3, 5, customer_id=customer.id), actor_id=user.id
    )
    purchase = transaction_service.create_transaction(
        {"type": "BUY", "items": [{"product_id": product.id, "unit_quantity_id": unit.id, "quantity": 4, "price_per_unit": 10}]},
        actor_id=user.id,
    )
    payments = [
        payment_service.create_payment(
            {"type": "CASH", "amount": 10, "transaction_id": sale["id"]}, actor_id=user.id
        ),
        payment_service.create_payment(
            {"type": "TRANSFER", "amount": 30, "direction": "OUTFLOW", "transaction_id": purchase["id"]},
            actor_id=user.id,
        ),
        payment_service.create_payment({"type": "CASH", "amount": 5}, actor_id=user.id),
    ]
    for payment in payments:
        db_session.get(Payment, payment["id"]).created_at = datetime(2026, 3, 10, 12)
    db_session.commit()
    return {"sale": sale, "purchase": purchase}


def test_finance_dashboard(db_session, activity):
    dashboard = dashboard_service.get_finance_dashboard()

    assert dashboard["gross_sales"] == {
        "total_revenue": 15.0,
        "total_expenses": 40.0,
        "net_income": -25.0,
    }
    assert dashboard["cashflow_report"] == {
        "inflow": 15.0,
        "outflow": 30.0,
        "net_cash_flow": -15.0,
    }
    assert dashboard["outstanding_balance"] == {
        "accounts_receivable": 5.0,
        "accounts_payable": 10.0,
        "net_working_capital": -5.0,
    }


def test_finance_dashboard_windows_payments_by_their_date(db_session, activity):
    dashboard = dashboard_service.get_finance_dashboard(start_date="2026-03-11")

    assert dashboard["cashflow_report"]["inflow"] == 0.0
    assert dashboard["cashflow_report"]["outflow"] == 0.0


def test_payment_dashboard(db_session, customer, activity):
    dashboard = dashboard_service.get_payment_dashboard()

    assert dashboard["customer_summaries"] == [
        {"customer_id": None, "customer_name": "Anonymous", "payable": -30.0, "receivable": 0.0},
        {"customer_id": customer.id, "customer_name": "Budi", "payable": 0.0, "receivable": 10.0},
    ]
    assert dashboard["historical_data"] == [
        {"date": "2026-03-10T00:00:00Z", "payable": -30.0, "receivable": 10.0, "net": 40.0},
    ]


def test_payment_dashboard_empty_range(db_session, activity):
    dashboard = dashboard_service.get_payment_dashboard(start_date="2027-01-01", end_date="2027-12-31")
    assert dashboard == {"customer_summaries": [], "historical_data": []}

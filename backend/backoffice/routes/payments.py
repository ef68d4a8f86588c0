# Overview: Flask API routes for payments; parses input and returns JSON responses.

"""
Payment API Routes

DESIGN:
- Payments carry an absolute amount and a direction (INFLOW / OUTFLOW)
- Recording a payment against a transaction moves its status
- Overpayment on an INFLOW is rejected with the remaining balance
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import LedgerError
from ..responses import data_response
from ..services import dashboard_service, payment_service
from .common import internal_error, ledger_error


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
@require_actor
def create_payment_route():
    """
    Record a payment.

    Request body:
    {
        "type": "CASH",
        "direction": "INFLOW",                (optional, default INFLOW)
        "amount": 15.00,
        "transaction_id": 12,                 (optional)
        "details": [{"identifier": "card_last4", "value": "4242"}],
        "remark": "...",
        "file_id": 3                          (optional)
    }

    Returns:
        201: Payment recorded (transaction_status included when applied to a transaction)
        400: Invalid input or overpayment
        404: Transaction not found
    """
    try:
        result = payment_service.create_payment(
            request.get_json(silent=True),
            actor_id=g.current_user.id,
        )
        return jsonify(data_response("Payment created successfully", result)), 201
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to create payment")
        return internal_error()


@payments_bp.get("")
@require_actor
def list_payments_route():
    try:
        return jsonify(payment_service.get_payments(
            page=request.args.get("page"),
            limit=request.args.get("limit"),
            type=request.args.get("type"),
            direction=request.args.get("direction"),
            transaction_id=request.args.get("transaction_id"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        ))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return internal_error()


@payments_bp.get("/dashboard")
@require_actor
def payment_dashboard_route():
    try:
        result = dashboard_service.get_payment_dashboard(
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify(data_response("Payment dashboard data retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to build payment dashboard")
        return internal_error()


@payments_bp.get("/<int:payment_id>")
@require_actor
def get_payment_route(payment_id: int):
    try:
        result = payment_service.get_payment(payment_id)
        return jsonify(data_response("Payment retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to load payment %s", payment_id)
        return internal_error()

# Overview: Flask API routes for transactions; parses input and returns JSON responses.

"""
Transaction API Routes

- POST /api/transactions                 create a SELL or BUY transaction
- GET  /api/transactions                 paginated list (type, status, customer_id, start_date, end_date)
- GET  /api/transactions/<id>            one transaction with items and discounts
- GET  /api/transactions/summary         revenue / expenses / net income
- GET  /api/transactions/product-summary per-product trading totals
- GET  /api/transactions/time-series     bucketed revenue / expenses
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import LedgerError
from ..responses import data_response
from ..services import transaction_service
from .common import internal_error, ledger_error


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_actor
def create_transaction_route():
    """
    Create a transaction.

    Request body:
    {
        "type": "SELL",
        "customer_id": 1,                     (optional)
        "items": [{"product_id": 1, "unit_quantity_id": 1,
                   "quantity": 3, "price_per_unit": 5, "remark": "..."}],
        "discounts": [{"type": "TOTAL_PERCENTAGE", "percentage": 10}],
        "taxes": [1],
        "remark": "...",
        "file_id": 7                          (optional)
    }

    Money fields take at most 2 decimal places, quantities at most 4;
    anything finer is a 400, never rounded.

    Returns:
        201: Transaction created
        400: Invalid input or insufficient stock
        404: Unknown customer, product, unit or tax
    """
    try:
        result = transaction_service.create_transaction(
            request.get_json(silent=True),
            actor_id=g.current_user.id,
        )
        return jsonify(data_response("Transaction created successfully", result)), 201
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return internal_error()


@transactions_bp.get("")
@require_actor
def list_transactions_route():
    try:
        return jsonify(transaction_service.get_transactions(
            page=request.args.get("page"),
            limit=request.args.get("limit"),
            type=request.args.get("type"),
            status=request.args.get("status"),
            customer_id=request.args.get("customer_id"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        ))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return internal_error()


@transactions_bp.get("/summary")
@require_actor
def transaction_summary_route():
    try:
        result = transaction_service.get_transaction_summary(
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify(data_response("Transaction summary retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to build transaction summary")
        return internal_error()


@transactions_bp.get("/product-summary")
@require_actor
def product_summary_route():
    try:
        result = transaction_service.get_product_transaction_summary(
            product_id=request.args.get("product_id"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify(data_response("Product transaction summary retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to build product transaction summary")
        return internal_error()


@transactions_bp.get("/time-series")
@require_actor
def time_series_route():
    try:
        result = transaction_service.get_transaction_time_series(
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            interval=request.args.get("interval"),
            product_id=request.args.get("product_id"),
        )
        return jsonify(data_response("Transaction time series retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to build transaction time series")
        return internal_error()


@transactions_bp.get("/<int:transaction_id>")
@require_actor
def get_transaction_route(transaction_id: int):
    try:
        result = transaction_service.get_transaction(transaction_id)
        return jsonify(data_response("Transaction retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to load transaction %s", transaction_id)
        return internal_error()

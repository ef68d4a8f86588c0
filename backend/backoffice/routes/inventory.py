# Overview: Flask API routes for the inventory ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import LedgerError
from ..responses import data_response
from ..services import inventory_service
from .common import internal_error, ledger_error


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory-histories")


@inventory_bp.post("/manipulate")
@require_actor
def manipulate_inventory_route():
    """
    Manual stock adjustment batch.

    Request body:
    {
        "items": [{"product_id": 1, "unit_quantity_id": 1, "quantity": -2, "remark": "broken"}],
        "remark": "stock take"
    }

    Returns:
        201: Ledger rows created
        400: Invalid input or the batch would drive a balance negative
        404: Unknown product or unit
    """
    try:
        result = inventory_service.manipulate_inventory(
            request.get_json(silent=True),
            actor_id=g.current_user.id,
        )
        return jsonify(data_response("Inventory manipulated successfully", result)), 201
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to manipulate inventory")
        return internal_error()


@inventory_bp.get("")
@require_actor
def list_inventory_histories_route():
    try:
        return jsonify(inventory_service.get_inventory_histories(
            page=request.args.get("page"),
            limit=request.args.get("limit"),
            product_id=request.args.get("product_id"),
            unit_quantity_id=request.args.get("unit_quantity_id"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        ))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to list inventory histories")
        return internal_error()


@inventory_bp.get("/summary")
@require_actor
def inventory_summary_route():
    try:
        result = inventory_service.get_inventory_summary(request.args.get("product_id"))
        return jsonify(data_response("Inventory summary retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to build inventory summary")
        return internal_error()


@inventory_bp.get("/time-series")
@require_actor
def inventory_time_series_route():
    try:
        result = inventory_service.get_inventory_time_series(
            request.args.get("product_id"),
            unit_quantity_id=request.args.get("unit_quantity_id"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            interval=request.args.get("interval"),
        )
        return jsonify(data_response("Inventory time series retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to build inventory time series")
        return internal_error()


@inventory_bp.get("/<int:history_id>")
@require_actor
def get_inventory_history_route(history_id: int):
    try:
        result = inventory_service.get_inventory_history(history_id)
        return jsonify(data_response("Inventory history retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to load inventory history %s", history_id)
        return internal_error()

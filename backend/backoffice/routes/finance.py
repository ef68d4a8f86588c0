# Overview: Flask API route for the finance dashboard.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_actor
from ..errors import LedgerError
from ..responses import data_response
from ..services import dashboard_service
from .common import internal_error, ledger_error


finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


@finance_bp.get("/dashboard")
@require_actor
def finance_dashboard_route():
    """Gross sales, cash flow and outstanding balances for an optional date range."""
    try:
        result = dashboard_service.get_finance_dashboard(
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify(data_response("Finance dashboard data retrieved successfully", result))
    except LedgerError as e:
        return ledger_error(e)
    except Exception:
        current_app.logger.exception("Failed to build finance dashboard")
        return internal_error()

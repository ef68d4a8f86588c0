# Overview: JSON error replies shared by the API blueprints.

from flask import jsonify

from ..errors import LedgerError
from ..responses import base_response, error_response


def ledger_error(exc: LedgerError):
    """Typed ledger error -> {message, requested_at, request_id} with its status."""
    body, status = error_response(exc)
    return jsonify(body), status


def internal_error():
    return jsonify(base_response("Internal server error")), 500

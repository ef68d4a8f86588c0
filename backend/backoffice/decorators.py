# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .responses import base_response
from .services.catalog_service import get_active_user


ACTOR_HEADER = "X-User-Id"


def require_actor(f):
    """
    Resolve the acting user from the X-User-Id header.

    Sets g.current_user to a live, active User. Returns 401 when the header
    is missing, not a positive integer, or names a user who cannot act.
    Session handling lives in front of this service; the header is what it
    forwards.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not raw.isdigit() or int(raw) <= 0:
            return jsonify(base_response("Authentication required")), 401

        user = get_active_user(int(raw))
        if user is None:
            return jsonify(base_response("Unknown or inactive user")), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function

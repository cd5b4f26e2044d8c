# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User


def require_actor(f):
    """
    Identify the acting staff member.

    Sets g.current_user from the X-User-Id header. Credential checks happen
    upstream of this service; here the header only has to name an active
    user so bills, orders and ledger entries can be attributed.

    Returns 401 if:
    - No X-User-Id header
    - Header is not an integer
    - User does not exist or is deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get("X-User-Id") or "").strip()
        if not raw:
            return jsonify({"error": "Authentication required"}), 401
        if not raw.isdigit():
            return jsonify({"error": "Invalid user id"}), 401

        user = db.session.get(User, int(raw))
        if user is None or not user.is_active:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function

from flask import request
from flask_login import current_user

from shared.errors import Unauthorized, Forbidden


def current_identity():
    """Return ``(user_id, is_admin)`` for the session user."""
    if not current_user.is_authenticated:
        raise Unauthorized("Authentication required")
    return current_user.id, bool(current_user.is_admin)


def require_admin() -> int:
    user_id, is_admin = current_identity()
    if not is_admin:
        raise Forbidden("Admin privileges required")
    return user_id


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

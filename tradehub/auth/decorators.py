"""Decorators for authenticated routes."""

from functools import wraps

from flask import jsonify, session


def login_required(f):
    """Reject the request with a JSON 401 if nobody is logged in.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if "user_id" not in session:
            return (
                jsonify(
                    {
                        "success": False,
                        "error": "Authentication required",
                        "errorKind": "Unauthorized",
                    }
                ),
                401,
            )
        return f(*args, **kwargs)

    return decorated_function

# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


ACTOR_HEADER = "X-Actor-Id"


def require_actor(f):
    """
    Establish the acting employee for the request.

    Authentication happens upstream; the gateway forwards the authenticated
    user's id in the X-Actor-Id header. Sets g.actor_id.

    Returns 401 when the header is missing or not a positive integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not raw.isdigit() or int(raw) <= 0:
            return jsonify({"error": "Authenticated actor required", "code": "UNAUTHENTICATED"}), 401

        g.actor_id = int(raw)
        return f(*args, **kwargs)

    return decorated_function

from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app

BEARER_PREFIX = "Bearer "


def get_auth_service():
    """The AuthService wired up by create_app()."""
    return current_app.extensions["auth_service"]


def jwt_required():
    """
    Require a valid Bearer access token.
    On success g.current_user_id and g.current_claims are set for the view.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "").strip()
            if not auth:
                abort(401, description="Authorization header is required")
            if not auth.startswith(BEARER_PREFIX):
                abort(401, description="Authorization header must be in format: Bearer <token>")
            token = auth[len(BEARER_PREFIX):].strip()
            if not token:
                abort(401, description="Access token is required")

            # InvalidToken is rendered as a generic 401 by the error handlers
            claims = get_auth_service().authenticate(token)
            g.current_user_id = claims.user_id
            g.current_claims = claims
            return fn(*args, **kwargs)

        return wrapper

    return decorator

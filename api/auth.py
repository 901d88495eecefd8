"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me

Access tokens are returned in the body; refresh tokens only ever travel in
an HTTP-only cookie scoped to the auth routes. Every refresh rotates the
cookie, and replaying an old cookie revokes the whole session family.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import CredentialsSchema, UserOutSchema
from utils.decorators import get_auth_service, jwt_required
from utils.exceptions import RefreshRejected

from .errors import error_response

bp = Blueprint("auth", __name__)

credentials_schema = CredentialsSchema()
user_out_schema = UserOutSchema()


def _auth_payload(result):
    return {
        "accessToken": result.access_token,
        "user": user_out_schema.dump(result.user),
    }


def _set_refresh_cookie(response, token, expires_at):
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        token,
        expires=expires_at,
        path=cfg["REFRESH_COOKIE_PATH"],
        domain=cfg["REFRESH_COOKIE_DOMAIN"],
        secure=cfg["REFRESH_COOKIE_SECURE"],
        httponly=cfg["REFRESH_COOKIE_HTTPONLY"],
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )


def _clear_refresh_cookie(response):
    cfg = current_app.config
    response.delete_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        path=cfg["REFRESH_COOKIE_PATH"],
        domain=cfg["REFRESH_COOKIE_DOMAIN"],
        secure=cfg["REFRESH_COOKIE_SECURE"],
        httponly=cfg["REFRESH_COOKIE_HTTPONLY"],
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )


def _read_refresh_cookie():
    token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"], "")
    return token.strip() or None


def _respond_with_session(result, status):
    response = jsonify(_auth_payload(result))
    response.status_code = status
    _set_refresh_cookie(response, result.refresh_token, result.refresh_expires_at)
    return response


@bp.post("/register")
def register():
    """
    Register a new user and start a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [username, password]
          properties:
            username: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created (returns access token, sets refresh cookie)
      400:
        description: Validation error
      409:
        description: Username is already taken
    """
    payload = request.get_json(silent=True) or {}
    data = credentials_schema.load(payload)
    result = get_auth_service().register(data["username"], data["password"])
    return _respond_with_session(result, 201)


@bp.post("/login")
def login():
    """
    Login: return access token and set refresh cookie
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [username, password]
           properties:
             username: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns access token, sets refresh cookie)
      400:
        description: Validation error
      401:
        description: Invalid username or password
    """
    payload = request.get_json(silent=True) or {}
    data = credentials_schema.load(payload)
    result = get_auth_service().login(data["username"], data["password"])
    return _respond_with_session(result, 200)


@bp.post("/refresh")
def refresh():
    """
    Exchange the refresh cookie for a new access token (rotation).
    The presented cookie becomes unusable; a new one is set.
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (returns access token, rotates refresh cookie)
      401:
        description: Missing, invalid or inactive refresh token
    """
    token = _read_refresh_cookie()
    if token is None:
        return error_response("UNAUTHORIZED", "Refresh token is required", 401)

    try:
        result = get_auth_service().rotate(token)
    except RefreshRejected as exc:
        body, status = error_response(exc.kind.value, exc.message, exc.status)
        _clear_refresh_cookie(body)
        return body, status

    return _respond_with_session(result, 200)


@bp.post("/logout")
def logout():
    """
    Logout: revoke the refresh session behind the cookie and clear it.
    Succeeds even when the cookie is missing, unknown or already revoked.
    ---
    tags:
      - Auth
    responses:
      204:
        description: ""
      500:
        description: Internal error
    """
    token = _read_refresh_cookie()
    if token is not None:
        get_auth_service().revoke(token)

    response = current_app.response_class(status=204)
    _clear_refresh_cookie(response)
    return response


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = get_auth_service().current_user(g.current_claims)
    return jsonify(
        {
            "data": user_out_schema.dump(user)
        }
    ), 200

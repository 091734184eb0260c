"""
Authentication blueprint, mounted at /api/v1/auth:
- POST /api/v1/auth/register
- POST /api/v1/auth/admin       (admin only) -> create another admin
- POST /api/v1/auth/login
- POST /api/v1/auth/refresh
- POST /api/v1/auth/logout
- POST /api/v1/auth/logout-all  (authenticated)
- GET  /api/v1/auth/me
- GET  /api/v1/auth/sessions

Access tokens travel in the response body and come back as a Bearer header.
Refresh tokens never appear in a body: they live in two HttpOnly cookies,
`refreshToken` and `tokenFamily`, scoped to REFRESH_COOKIE_PATH
(/api/v1/auth, the prefix this blueprint is registered under).
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import UserCreateSchema, UserLoginSchema, SessionOutSchema
from models.user import Role
from services.session_manager import ClientMeta
from utils.decorators import jwt_required, roles_required

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()
sessions_out_schema = SessionOutSchema(many=True)


def _sessions():
    return current_app.extensions["bookstore"].sessions


def _client_meta() -> ClientMeta:
    return ClientMeta(ip_address=request.remote_addr, user_agent=request.headers.get("User-Agent"))


def _read_session_cookies():
    cfg = current_app.config
    return request.cookies.get(cfg["REFRESH_COOKIE_NAME"]), request.cookies.get(cfg["FAMILY_COOKIE_NAME"])


def _set_session_cookies(response, refresh_token: str, family: str):
    cfg = current_app.config
    max_age = int(cfg["REFRESH_TOKEN_EXPIRES"].total_seconds())
    for name, value in ((cfg["REFRESH_COOKIE_NAME"], refresh_token), (cfg["FAMILY_COOKIE_NAME"], family)):
        response.set_cookie(
            name,
            value,
            max_age=max_age,
            httponly=True,
            secure=cfg["COOKIE_SECURE"],
            samesite="Strict",
            path=cfg["REFRESH_COOKIE_PATH"],
        )
    return response


def _clear_session_cookies(response):
    cfg = current_app.config
    for name in (cfg["REFRESH_COOKIE_NAME"], cfg["FAMILY_COOKIE_NAME"]):
        response.delete_cookie(
            name,
            path=cfg["REFRESH_COOKIE_PATH"],
            secure=cfg["COOKIE_SECURE"],
            httponly=True,
            samesite="Strict",
        )
    return response


@bp.post("/register")
async def register():
    """
    Register a new user
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string, description: "6+ chars, one uppercase, one digit, one special character" }
    responses:
      201:
        description: Created
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    data = user_create_schema.load(request.get_json(silent=True) or {})
    user = await _sessions().register(name=data["name"], email=data["email"], password=data["password"])
    return jsonify({"success": True, "message": "User registered successfully", "data": user}), 201


@bp.post("/admin")
@roles_required(Role.ADMIN)
async def register_admin():
    """
    Create an admin account (admin only)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      401:
        description: Missing or invalid access token
      403:
        description: Caller is not an admin
      409:
        description: Email already registered
    """
    data = user_create_schema.load(request.get_json(silent=True) or {})
    user = await _sessions().register(
        name=data["name"], email=data["email"], password=data["password"], role=Role.ADMIN
    )
    return jsonify({"success": True, "message": "Admin registered successfully", "data": user}), 201


@bp.post("/login")
async def login():
    """
    Login: returns an access token and sets the session cookies
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
    responses:
      200:
        description: OK (body carries the access token, cookies carry the refresh token and family)
      401:
        description: Invalid credentials
    """
    data = user_login_schema.load(request.get_json(silent=True) or {})
    result = await _sessions().login(data["email"], data["password"], _client_meta())
    response = jsonify(
        {
            "success": True,
            "message": "Login successful",
            "token": result.access_token,
            "data": result.user,
        }
    )
    return _set_session_cookies(response, result.refresh_token, result.family)


@bp.post("/refresh")
async def refresh():
    """
    Rotate the refresh token and issue a new access token
    ---
    tags:
      - Auth
    description: Reads the refreshToken and tokenFamily cookies. A replayed refresh token revokes the whole session.
    responses:
      200:
        description: OK (new access token, cookies reissued)
      401:
        description: Missing, invalid, expired or reused refresh token
    """
    refresh_token, family = _read_session_cookies()
    result = await _sessions().refresh(refresh_token, family, _client_meta())
    response = jsonify({"success": True, "token": result.access_token})
    return _set_session_cookies(response, result.refresh_token, result.family)


@bp.post("/logout")
async def logout():
    """
    Logout: revoke this session and clear its cookies
    ---
    tags:
      - Auth
    responses:
      200:
        description: Always succeeds
    """
    refresh_token, family = _read_session_cookies()
    await _sessions().logout(refresh_token, family)
    return _clear_session_cookies(jsonify({"success": True, "message": "Logged out"}))


@bp.post("/logout-all")
@jwt_required()
async def logout_all():
    """
    Logout from every device
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: All sessions of the caller revoked
      401:
        description: Missing or invalid access token
    """
    revoked = await _sessions().logout_all_devices(g.auth.id)
    return _clear_session_cookies(
        jsonify({"success": True, "message": "Logged out from all devices", "data": {"revoked": revoked}})
    )


@bp.get("/me")
@jwt_required()
def me():
    """
    Current user (from the access token)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Missing or invalid access token
    """
    return jsonify({"success": True, "data": g.auth.public()})


@bp.get("/sessions")
@jwt_required()
async def list_sessions():
    """
    Live sessions of the current user, one per login
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
    """
    rows = await _sessions().list_sessions(g.auth.id)
    return jsonify({"success": True, "data": sessions_out_schema.dump(rows)})

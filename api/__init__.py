from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models.book_store import BookStore
from models.db_storage import DBStorage
from models.refresh_token_store import RefreshTokenStore
from models.user_store import UserStore
from services.session_manager import SessionManager
from utils.security import Hasher, TokenCodec

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Bookstore API",
        "version": "1.0.0",
        "description": "REST API for the bookstore catalog and cookie-based user sessions.",
    },
    "basePath": "/",  # Blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}

MIN_SECRET_LENGTH = 32


@dataclass
class Services:
    """Process-wide handles shared by every request (app.extensions["bookstore"])."""

    storage: DBStorage
    users: UserStore
    books: BookStore
    sessions: SessionManager


def build_services(config) -> Services:
    secret = config.get("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET must be set")
    if len(secret) < MIN_SECRET_LENGTH:
        logger.warning("JWT_SECRET is shorter than %s characters", MIN_SECRET_LENGTH)

    storage = DBStorage(
        config["DATABASE_URL"],
        timeout=config.get("STORAGE_TIMEOUT_SECONDS", 5),
        echo=config.get("DATABASE_ECHO", False),
    )
    users = UserStore(storage)
    hasher = Hasher(
        time_cost=config.get("ARGON2_TIME_COST"),
        memory_cost=config.get("ARGON2_MEMORY_COST"),
        parallelism=config.get("ARGON2_PARALLELISM"),
    )
    codec = TokenCodec(secret, algorithm=config["JWT_ALGORITHM"], issuer=config["JWT_ISSUER"])
    sessions = SessionManager(
        users,
        RefreshTokenStore(storage),
        hasher,
        codec,
        access_ttl=config["ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
    )
    return Services(storage=storage, users=users, books=BookStore(storage), sessions=sessions)


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` is applied on top of the selected config class (tests use it
    to point at a temporary database).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    # Cookies carry the session, so the browser must be allowed to send credentials
    origins = [o.strip() for o in app.config.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    CORS(app, resources={r"/*": {"origins": origins or "*"}}, supports_credentials=True)

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Uniform error envelope
    register_error_handlers(app)

    services = build_services(app.config)
    app.extensions["bookstore"] = services
    if app.config.get("CREATE_TABLES"):
        asyncio.run(services.storage.reload())

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .books import bp as books_bp
    from .cli import register_commands

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(books_bp, url_prefix="/api/v1")
    register_commands(app)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Bookstore API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app

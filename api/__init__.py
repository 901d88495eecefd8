from datetime import datetime
from typing import Callable

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import check_production_secret, get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from models.repositories import SQLRefreshSessionRepository, SQLUserRepository
from utils.security import TokenSigner, utcnow

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Todo API",
        "version": "1.0.0",
        "description": "Per-user todo lists with access tokens and rotating refresh sessions.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
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


def create_app(config_name: str | None = None, now: Callable[[], datetime] = utcnow) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `now` is the clock shared by token signing and refresh-session expiry.
    """
    from .services import AuthService

    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))

    # Refresh cookies travel cross-origin, so credentials must be allowed
    CORS(
        app,
        resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Set-Cookie"],
        methods=["GET", "POST", "DELETE", "OPTIONS"],
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    # ConfigurationError here aborts startup
    if app.config["REQUIRE_STRONG_JWT_SECRET"]:
        check_production_secret(app.config["JWT_SECRET"])
    signer = TokenSigner(
        secret=app.config["JWT_SECRET"],
        ttl=app.config["ACCESS_TOKEN_EXPIRES"],
        algorithm=app.config["JWT_ALGORITHM"],
        now=now,
    )
    storage.reload(app.config["DATABASE_URL"], echo=app.config["DEBUG"])
    app.extensions["auth_service"] = AuthService(
        users=SQLUserRepository(storage),
        sessions=SQLRefreshSessionRepository(storage),
        signer=signer,
        refresh_ttl=app.config["REFRESH_TOKEN_EXPIRES"],
        now=now,
    )

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .todos import bp as todos_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(todos_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Todo API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app

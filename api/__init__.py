import logging

import click

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, validate_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from services.refresh_tokens import RefreshTokenStore
from services.sessions import SessionService
from services.users import UserAdminService
from utils.security import PasswordManager, TokenCodec

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Session Auth API",
        "version": "1.0.0",
        "description": "Signup, login, token refresh/rotation, logout and role-based access control.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the access token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
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


def init_services(app: Flask) -> None:
    """Build the auth services from the (now frozen) configuration."""
    cfg = app.config
    codec = TokenCodec.from_config(cfg)
    hasher = PasswordManager(
        time_cost=cfg["PASSWORD_HASH_TIME_COST"],
        memory_cost=cfg["PASSWORD_HASH_MEMORY_COST"],
        parallelism=cfg["PASSWORD_HASH_PARALLELISM"],
    )
    tokens = RefreshTokenStore(storage, codec)
    app.extensions["token_codec"] = codec
    app.extensions["refresh_tokens"] = tokens
    app.extensions["sessions"] = SessionService(storage, hasher, codec, tokens)
    app.extensions["user_admin"] = UserAdminService(storage, tokens)


def create_app(config_name: str | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    validate_config(app.config)
    logging.getLogger().setLevel(app.config["LOG_LEVEL"])

    storage.reload(
        app.config["DATABASE_URL"],
        timeout=app.config["STORE_TIMEOUT_SECONDS"],
        echo=app.config["SQLALCHEMY_ECHO"],
    )
    init_services(app)

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.cli.command("purge-expired-tokens")
    def purge_expired_tokens():
        """Delete refresh token records that are past their expiry."""
        removed = app.extensions["refresh_tokens"].purge_expired()
        click.echo(f"removed {removed} expired refresh token(s)")

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Session Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app

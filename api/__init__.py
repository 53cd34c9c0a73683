import logging
from datetime import timedelta

import click
from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from models.token_store import RefreshTokenStore
from utils.authz import AuthorizationGate
from utils.security import AuthSettings, TokenIssuer, utcnow

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Study Portal API",
        "version": "1.0.0",
        "description": "Authentication, sessions and users for the study portal.",
    },
    "basePath": "/",  # Blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
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


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """
    Give the root logger a stream handler unless the WSGI host already
    installed one, then set the level of the api/models/utils loggers.
    """
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in ("api", "models", "utils"):
        logging.getLogger(name).setLevel(level)


def create_app(config_name: str | None = None, clock=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `clock` overrides the token issuer's time source (tests).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    configure_logging(app.config["LOG_LEVEL"])

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage.configure(app.config["DATABASE_URL"], echo=app.config["SQL_ECHO"])
    storage.reload()

    # Token settings are frozen here; nothing reads the signing secrets from app.config later
    from .services import SessionLifecycle
    from .capabilities import ROUTE_CAPABILITIES

    settings = AuthSettings.from_mapping(app.config)
    issuer = TokenIssuer(settings, clock) if clock else TokenIssuer(settings)
    app.extensions["token_issuer"] = issuer
    app.extensions["session_lifecycle"] = SessionLifecycle(storage, issuer)
    AuthorizationGate(issuer, ROUTE_CAPABILITIES).init_app(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.cli.command("purge-refresh-tokens")
    @click.option("--days", type=int, default=None, help="Keep records expired for fewer days than this.")
    def purge_refresh_tokens(days):
        """Delete refresh-token records that expired long ago."""
        days = app.config["REFRESH_TOKEN_RETENTION_DAYS"] if days is None else days
        removed = RefreshTokenStore(storage).purge_expired(utcnow() - timedelta(days=days))
        storage.save()
        click.echo(f"Purged {removed} refresh token(s) expired more than {days} day(s) ago.")

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Study Portal API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app

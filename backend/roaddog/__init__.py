# backend/roaddog/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.sheets import sheets_bp  # Google Sheets storage path
    from .routes.organizations import organizations_bp, user_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp, email_signups_bp
    from .routes.settings import settings_bp
    from .routes.closeouts import closeouts_bp
    from .routes.analytics import analytics_bp
    from .routes.feedback import feedback_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(sheets_bp)
    app.register_blueprint(organizations_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(email_signups_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(closeouts_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(feedback_bp)

    allowed_origins = set(app.config["CORS_ALLOWED_ORIGINS"])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                "Authorization, Content-Type, X-Google-Access-Token, X-Organization-Id"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

# backend/shopledger/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.sales import sales_bp
    from .routes.expenses import expenses_bp
    from .routes.reports import reports_bp
    from .routes.settings import settings_bp
    from .routes.assistant import assistant_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(assistant_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    # Build the shop context once and subscribe it to the database
    from .context import EXTENSION_KEY, ShopContext
    from .services.insights_service import InsightsClient
    from .services.preferences_service import PreferenceStore
    from .services.repository import SqlRepository

    with app.app_context():
        if app.config["AUTO_CREATE_SCHEMA"]:
            db.create_all()

        context = ShopContext(
            SqlRepository(),
            preferences=PreferenceStore(),
            insights=InsightsClient.from_config(app.config),
            default_pin=app.config["SHOP_DEFAULT_PIN"],
            timezone_name=app.config["SHOP_TIMEZONE"],
            low_stock_threshold=app.config["LOW_STOCK_THRESHOLD"],
        )
        context.start()

    app.extensions[EXTENSION_KEY] = context

    @app.before_request
    def refresh_shop_context():
        if app.config["REFRESH_ON_REQUEST"]:
            app.extensions[EXTENSION_KEY].refresh()

    return app

"""
Flask Application Factory - Order Stats API

Reports run as SQL aggregates in PostgreSQL; the app only builds queries,
normalizes results and formats them.
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS
from config import Config
from models.database import db


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(config_overrides: dict = None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    logger = logging.getLogger('stats.app')

    # Initialize CORS - read-only reporting API, allow all origins
    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
         expose_headers=["X-Request-ID"],
         supports_credentials=False,
         send_wildcard=True)

    # === API MIDDLEWARE ===
    # Request ID injection for request correlation and debugging
    from api.middleware import setup_request_id_middleware
    setup_request_id_middleware(app)

    # Standard JSON error envelope for HTTP errors and unhandled exceptions
    from api.middleware import setup_error_handlers
    setup_error_handlers(app)

    # Initialize SQLAlchemy
    db.init_app(app)

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            # Import all models before create_all to ensure tables are created
            from models import Order, OrderItem, OrderAdjustment, OrderAddress, Customer, Download  # noqa: F401
            db.create_all()
            logger.info("Database initialized")
    else:
        logger.info("Database ready (schema creation disabled)")

    # Register routes
    from routes.stats import stats_bp
    app.register_blueprint(stats_bp, url_prefix='/api')

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "name": "Order Stats API",
            "status": "running",
            "endpoints": ["/api/stats", "/api/stats/ranges", "/api/stats/<metric>"],
        })

    return app


def run_app():
    """Main entry point for local development - starts server with Flask's dev server."""
    app = create_app()
    app.run(debug=Config.DEBUG, host="0.0.0.0", port=5000)


if __name__ == "__main__":
    run_app()

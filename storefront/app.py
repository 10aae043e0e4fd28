"""Storefront Flask application."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .common.db import SessionFactory, build_session_factory, init_db
from .common.errors import StoreError
from .common.services import (
    AuthService,
    CartService,
    CatalogService,
    OrderMailer,
    OrderService,
    PayKeeperClient,
    PaymentStatusReconciler,
    TokenIssuer,
    UserActivityMonitor,
)
from .config import StoreConfig
from .routes import auth, cart, categories, orders, products


logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(StoreError)
    def handle_store_error(exc: StoreError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return jsonify({"error": "Internal server error"}), 500


def create_app(
    config: Optional[StoreConfig] = None,
    *,
    session_factory: Optional[SessionFactory] = None,
    gateway=None,
    mailer=None,
) -> Flask:
    config = config or StoreConfig.load()
    _configure_logging(config.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["STOREFRONT_CONFIG"] = config

    session_factory = session_factory or build_session_factory(config.database_url)
    init_db(session_factory)

    if gateway is None:
        gateway = PayKeeperClient(config.paykeeper_url, config.paykeeper_user, config.paykeeper_password)
        if not gateway.configured:
            logger.warning("PayKeeper credentials not configured; payment endpoints will fail")
    if mailer is None:
        mailer = OrderMailer(
            host=config.smtp_host,
            port=config.smtp_port,
            user=config.smtp_user,
            password=config.smtp_password,
            use_ssl=config.smtp_use_ssl,
            recipient=config.order_notify_email,
        )

    tokens = TokenIssuer(
        config.jwt_secret,
        config.jwt_refresh_secret,
        timedelta(minutes=config.access_token_ttl_minutes),
        timedelta(days=config.refresh_token_ttl_days),
    )
    components = {
        "auth_service": AuthService(session_factory, tokens),
        "catalog_service": CatalogService(session_factory),
        "cart_service": CartService(session_factory),
        "order_service": OrderService(session_factory, gateway, mailer),
        "reconciler": PaymentStatusReconciler(session_factory, gateway),
        "activity_monitor": UserActivityMonitor(session_factory),
    }
    app.extensions["storefront_components"] = components

    app.register_blueprint(auth.auth_bp)
    app.register_blueprint(categories.categories_bp)
    app.register_blueprint(products.products_bp)
    app.register_blueprint(cart.cart_bp)
    app.register_blueprint(orders.orders_bp)
    _register_error_handlers(app)

    if config.background_tasks:
        components["reconciler"].start(config.payment_check_interval_minutes)
        components["activity_monitor"].start(config.activity_check_interval_seconds)

    return app


def main() -> None:
    config = StoreConfig.load()
    app = create_app(config)
    app.run(host="0.0.0.0", port=config.port, debug=False)


if __name__ == "__main__":
    main()

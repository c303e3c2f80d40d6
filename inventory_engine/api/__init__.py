"""
HTTP API for the Inventory Forecasting Engine.

Blueprints are mounted under /api/inventory. Domain errors raised by the
services are turned into JSON responses by the handlers registered here.
"""
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from inventory_engine.db import db
from inventory_engine.exceptions import (
    ConflictError, InventoryEngineError, NotFoundError, ValidationError
)
from inventory_engine.logging_setup import get_logger, log_exception

logger = get_logger('api')

API_PREFIX = '/api/inventory'

STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def status_for(error: InventoryEngineError) -> int:
    for error_class, status in STATUS_CODES:
        if isinstance(error, error_class):
            return status
    return 500


def error_response(error: InventoryEngineError):
    status = status_for(error)
    if status == 500:
        logger.error(f"Unhandled engine error: {error}")
    body = {'success': False}
    body.update(error.to_dict())
    body['error'] = error.message
    return jsonify(body), status


def register_error_handlers(app: Flask):
    app.register_error_handler(InventoryEngineError, error_response)

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({'success': False, 'error': e.description}), e.code

    @app.errorhandler(Exception)
    def unexpected_error(e):
        log_exception('api', e, "Unexpected error")
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


def create_app(db_url=None) -> Flask:
    """Create the Flask application.

    Args:
        db_url: Optional database URL; defaults to the configured database

    Returns:
        Flask application
    """
    from inventory_engine.api.alert_routes import alert_bp
    from inventory_engine.api.bom_routes import bom_bp
    from inventory_engine.api.po_routes import po_bp
    from inventory_engine.api.sku_routes import sku_bp
    from inventory_engine.api.stock_routes import stock_bp

    if db_url is not None:
        db.initialize(db_url)

    app = Flask(__name__)
    app.json.sort_keys = False

    for blueprint in (stock_bp, bom_bp, sku_bp, po_bp, alert_bp):
        app.register_blueprint(blueprint, url_prefix=API_PREFIX)

    register_error_handlers(app)
    return app

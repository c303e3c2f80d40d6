"""
Routes for stock levels, forecasts and stock adjustments.
"""
from flask import Blueprint, jsonify, request

from inventory_engine.api.helpers import date_arg, int_arg, json_body
from inventory_engine.db import session_scope
from inventory_engine.services.forecast_service import ForecastService
from inventory_engine.services.stock_service import StockService, adjustment_to_dict

stock_bp = Blueprint('stock', __name__)


@stock_bp.route('/stock', methods=['GET'])
def get_stock():
    """Per-component stock with velocity status and summary counts."""
    with session_scope() as session:
        overview = ForecastService(session).stock_overview(
            as_of=date_arg('as_of'),
            window_days=int_arg('days'),
            status=request.args.get('status'),
            category=request.args.get('category')
        )

    return jsonify({
        'success': True,
        'items': overview['items'],
        'summary': overview['summary'],
        'data_quality_warnings': overview['data_quality_warnings'],
        'as_of': overview['as_of']
    })


@stock_bp.route('/stock/adjust', methods=['POST'])
def adjust_stock():
    """Apply a count, add or remove adjustment to a component."""
    payload = json_body()

    with session_scope() as session:
        result = StockService(session).adjust(
            payload.get('component_id'),
            payload.get('adjustment_type'),
            payload.get('quantity'),
            notes=payload.get('notes'),
            request_id=payload.get('request_id') or request.headers.get('Idempotency-Key')
        )

    return jsonify({
        'success': True,
        'previous_on_hand': result['previous_on_hand'],
        'new_on_hand': result['new_on_hand'],
        'delta': result['delta'],
        'adjustment': result['adjustment'],
        'duplicate': result['duplicate']
    })


@stock_bp.route('/stock/<int:component_id>/adjustments', methods=['GET'])
def get_adjustments(component_id):
    """Adjustment history for a component, newest first."""
    with session_scope() as session:
        adjustments = StockService(session).get_adjustments(component_id, limit=int_arg('limit', 50))
        data = [adjustment_to_dict(a) for a in adjustments]

    return jsonify({
        'success': True,
        'adjustments': data,
        'count': len(data)
    })

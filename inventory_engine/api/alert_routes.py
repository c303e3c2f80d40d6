"""
Routes for the low-stock alert report.
"""
from flask import Blueprint, jsonify

from inventory_engine.api.helpers import date_arg
from inventory_engine.batch.low_stock_alert import build_low_stock_alert
from inventory_engine.db import session_scope

alert_bp = Blueprint('alerts', __name__)


@alert_bp.route('/alerts/low-stock', methods=['GET'])
def low_stock_alert():
    """Today's (or as_of's) low-stock report, recomputed on every call."""
    with session_scope() as session:
        report = build_low_stock_alert(session, date_arg('as_of'))

    data = report.to_dict()
    data['success'] = True
    return jsonify(data)

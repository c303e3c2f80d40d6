"""
Routes for purchase orders and receiving.
"""
from flask import Blueprint, jsonify, request

from inventory_engine.api.helpers import int_arg, json_body
from inventory_engine.db import session_scope
from inventory_engine.services.purchase_order_service import PurchaseOrderService, po_to_dict

po_bp = Blueprint('po', __name__)


@po_bp.route('/po', methods=['GET'])
def list_pos():
    with session_scope() as session:
        result = PurchaseOrderService(session).list_pos(
            status=request.args.get('status'),
            supplier_id=int_arg('supplier_id'),
            limit=int_arg('limit', 50)
        )

    return jsonify({
        'success': True,
        'purchase_orders': result['purchase_orders'],
        'summary': result['summary']
    })


@po_bp.route('/po', methods=['POST'])
def create_po():
    """Create a purchase order in draft or sent."""
    payload = json_body()

    with session_scope() as session:
        po = PurchaseOrderService(session).create_po(
            payload.get('supplier_id'),
            payload.get('items') or [],
            status=payload.get('status') or 'draft',
            expected_date=payload.get('expected_date'),
            shipping_cost=payload.get('shipping_cost'),
            notes=payload.get('notes'),
            brand_id=payload.get('brand_id'),
            currency=payload.get('currency')
        )
        data = po_to_dict(po)

    return jsonify({'success': True, 'purchase_order': data}), 201


@po_bp.route('/po/<int:po_id>', methods=['GET'])
def get_po(po_id):
    with session_scope() as session:
        data = po_to_dict(PurchaseOrderService(session).get_po(po_id))

    return jsonify({'success': True, 'purchase_order': data})


@po_bp.route('/po/<int:po_id>', methods=['PATCH'])
def update_po(po_id):
    """Change status (draft -> sent -> confirmed) and/or editable details."""
    payload = json_body()
    details = {key: payload[key] for key in ('expected_date', 'shipping_cost', 'notes') if key in payload}

    with session_scope() as session:
        po = PurchaseOrderService(session).update(po_id, status=payload.get('status') or None, **details)
        data = po_to_dict(po)

    return jsonify({'success': True, 'purchase_order': data})


@po_bp.route('/po/<int:po_id>', methods=['DELETE'])
def delete_po(po_id):
    with session_scope() as session:
        PurchaseOrderService(session).delete_po(po_id)

    return jsonify({'success': True})


@po_bp.route('/po/receive', methods=['POST'])
def receive_po():
    """Receive quantities against purchase order lines in one atomic call."""
    payload = json_body()

    with session_scope() as session:
        result = PurchaseOrderService(session).receive(payload.get('po_id'), payload.get('lines') or [])

    return jsonify({
        'success': True,
        'po_id': result['po_id'],
        'po_number': result['po_number'],
        'status': result['status'],
        'lines': result['lines']
    })

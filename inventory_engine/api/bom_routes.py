"""
Routes for bill of materials entries.
"""
from flask import Blueprint, jsonify, request

from inventory_engine.api.helpers import int_arg, json_body
from inventory_engine.db import session_scope
from inventory_engine.exceptions import ValidationError
from inventory_engine.services.bom_service import BomService, bom_entry_to_dict

bom_bp = Blueprint('bom', __name__)


@bom_bp.route('/bom', methods=['GET'])
def get_bom():
    """BOM for one product, products using a component, or all products grouped."""
    product_sku = request.args.get('product_sku')
    component_id = int_arg('component_id')

    with session_scope() as session:
        service = BomService(session)
        if product_sku:
            entries = [bom_entry_to_dict(e) for e in service.get_bom(product_sku)]
            return jsonify({'success': True, 'product_sku': product_sku.strip().upper(), 'entries': entries})

        if component_id is not None:
            return jsonify({'success': True, 'component_id': component_id,
                            'products': service.where_used(component_id)})

        products = service.get_products(search=request.args.get('search'))

    return jsonify({'success': True, 'products': products, 'count': len(products)})


@bom_bp.route('/bom', methods=['POST'])
def create_bom_entry():
    payload = json_body()

    with session_scope() as session:
        entry = BomService(session).create_entry(
            payload.get('product_sku'),
            payload.get('component_id'),
            payload.get('quantity', 1),
            brand_id=payload.get('brand_id'),
            notes=payload.get('notes')
        )
        data = bom_entry_to_dict(entry)

    return jsonify({'success': True, 'entry': data}), 201


@bom_bp.route('/bom', methods=['PATCH'])
def update_bom_entry():
    payload = json_body()
    if payload.get('id') is None:
        raise ValidationError("id is required")

    with session_scope() as session:
        entry = BomService(session).update_entry(
            payload['id'],
            quantity=payload.get('quantity'),
            notes=payload.get('notes')
        )
        data = bom_entry_to_dict(entry)

    return jsonify({'success': True, 'entry': data})


@bom_bp.route('/bom', methods=['DELETE'])
def delete_bom_entry():
    entry_id = int_arg('id')
    if entry_id is None:
        raise ValidationError("id is required")

    with session_scope() as session:
        BomService(session).delete_entry(entry_id)

    return jsonify({'success': True})

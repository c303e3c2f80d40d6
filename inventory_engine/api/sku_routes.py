"""
Routes for SKU mappings, SKU discovery and mapping suggestions.
"""
from flask import Blueprint, jsonify, request

from inventory_engine.api.helpers import int_arg, json_body
from inventory_engine.db import session_scope
from inventory_engine.services.sku_mapping_service import SkuMappingService, mapping_to_dict
from inventory_engine.utils.validation import require_int

sku_bp = Blueprint('sku', __name__)


def _field(payload, snake, camel):
    value = payload.get(snake)
    return value if value is not None else payload.get(camel)


@sku_bp.route('/sku-mapping', methods=['GET'])
def get_mappings():
    with session_scope() as session:
        mappings = [mapping_to_dict(m) for m in SkuMappingService(session).get_mappings(request.args.get('search'))]

    return jsonify({'success': True, 'mappings': mappings, 'count': len(mappings)})


@sku_bp.route('/sku-mapping', methods=['POST'])
def create_mapping():
    """Create an old -> current SKU mapping. 409 when already mapped or cyclic."""
    payload = json_body()

    with session_scope() as session:
        mapping = SkuMappingService(session).create_mapping(
            _field(payload, 'old_sku', 'oldSku'),
            _field(payload, 'current_sku', 'currentSku'),
            platform=payload.get('platform'),
            notes=payload.get('notes'),
            brand_id=payload.get('brand_id')
        )
        data = mapping_to_dict(mapping)

    return jsonify({'success': True, 'mapping': data}), 201


@sku_bp.route('/sku-mapping', methods=['DELETE'])
def delete_mapping():
    with session_scope() as session:
        SkuMappingService(session).delete_mapping(
            mapping_id=int_arg('id'),
            old_sku=request.args.get('old_sku')
        )

    return jsonify({'success': True})


@sku_bp.route('/sku-mapping/bulk', methods=['POST'])
def bulk_import_mappings():
    payload = json_body()

    with session_scope() as session:
        result = SkuMappingService(session).bulk_import(
            payload.get('mappings'),
            dry_run=bool(payload.get('dry_run', False))
        )

    result['success'] = True
    return jsonify(result)


@sku_bp.route('/sku-discovery', methods=['GET'])
def discover_skus():
    with session_scope() as session:
        skus = SkuMappingService(session).discover_skus(limit=int_arg('limit'))

    return jsonify({
        'success': True,
        'skus': skus,
        'count': len(skus),
        'unmapped': sum(1 for s in skus if s['resolution'] == 'unmapped')
    })


@sku_bp.route('/sku-suggestions', methods=['POST'])
def suggest_mappings():
    """Scored candidate mappings for review. Nothing is applied."""
    payload = json_body(required=False)

    with session_scope() as session:
        suggestions = SkuMappingService(session).generate_suggestions(
            source_sku=_field(payload, 'source_sku', 'sourceSku'),
            max_suggestions=require_int(payload.get('max_suggestions', 3), 'max_suggestions', minimum=1)
        )

    return jsonify({'success': True, 'suggestions': suggestions, 'count': len(suggestions)})

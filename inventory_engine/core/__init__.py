from .sku_rules import normalize_sku, display_group_base, base_sku, is_variant_sku
from .sku_resolution import SkuResolver, SkuResolution, follow_mappings, validate_new_mapping
from .bom_explosion import SalesWindow, ExplosionResult, explode
from .forecast import (
    StockStatus, VelocityStatus, calculate_velocity_status, resolve_lead_time,
    calculate_reorder_date, calculate_suggested_order_qty
)
from .sku_matcher import SkuCandidate, suggestions_for_sku, generate_all_suggestions

__all__ = [
    'normalize_sku',
    'display_group_base',
    'base_sku',
    'is_variant_sku',
    'SkuResolver',
    'SkuResolution',
    'follow_mappings',
    'validate_new_mapping',
    'SalesWindow',
    'ExplosionResult',
    'explode',
    'StockStatus',
    'VelocityStatus',
    'calculate_velocity_status',
    'resolve_lead_time',
    'calculate_reorder_date',
    'calculate_suggested_order_qty',
    'SkuCandidate',
    'suggestions_for_sku',
    'generate_all_suggestions'
]

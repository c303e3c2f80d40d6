# inventory_engine/core/sku_rules.py
"""Structural SKU rules shared by resolution, discovery and suggestions.

A trailing ``P`` marks a personalised variant. It consumes the same bill of
materials as its base SKU. A trailing ``-BALL`` marks a product that ships
with a ball: it has its own bill of materials and is grouped with the base
SKU only for sales reporting.
"""
from typing import Optional

from inventory_engine.exceptions import ValidationError

VARIANT_SUFFIXES = ('P',)
DISPLAY_GROUP_SUFFIXES = ('-BALL',)

# Jewellery lines share the order feed but are not assembled from components
EXCLUDED_KEYWORDS = (
    'jewel',
    'jewelry',
    'jewellery',
    'necklace',
    'bracelet',
    'earring',
    'earrings',
    'studs',
    'pendant',
    '14k gold',
    'gold-filled',
    'gold filled',
    'hypoallergenic',
    'sterling silver',
    'paperclip chain',
    'xoxo',
    'ball studs',
    'hoop earrings',
)


def normalize_sku(sku: Optional[str]) -> str:
    """Normalize a SKU to its stored form (trimmed, upper case).

    Args:
        sku: Raw SKU as received from a sales channel or operator

    Returns:
        Normalized SKU

    Raises:
        ValidationError: If the SKU is missing or blank
    """
    if sku is None or not isinstance(sku, str) or not sku.strip():
        raise ValidationError("SKU is required", details={'sku': sku})
    return sku.strip().upper()


def _strip_suffix(sku: str, suffixes) -> Optional[str]:
    for suffix in suffixes:
        if sku.endswith(suffix) and len(sku) > len(suffix):
            return sku[:-len(suffix)]
    return None


def is_variant_sku(sku: str) -> bool:
    """Whether the SKU carries a personalisation suffix."""
    return _strip_suffix(sku.strip().upper(), VARIANT_SUFFIXES) is not None


def variant_base(sku: str) -> Optional[str]:
    """Base SKU of a personalised variant, or None if not a variant."""
    return _strip_suffix(sku.strip().upper(), VARIANT_SUFFIXES)


def base_sku(sku: str) -> str:
    """SKU with any personalisation suffix removed."""
    upper = sku.strip().upper()
    return _strip_suffix(upper, VARIANT_SUFFIXES) or upper


def display_group_base(sku: str) -> str:
    """Reporting group for a SKU.

    Strips ``-BALL`` and then ``P``. Only used to aggregate sales figures,
    never for bill of materials lookup.
    """
    result = sku.strip().upper()
    result = _strip_suffix(result, DISPLAY_GROUP_SUFFIXES) or result
    result = _strip_suffix(result, VARIANT_SUFFIXES) or result
    return result


def is_excluded_product(sku: str, product_name: Optional[str] = None) -> bool:
    """Whether a SKU or title belongs to an excluded (non-component) product line."""
    combined = f"{sku or ''} {product_name or ''}".lower()
    return any(keyword in combined for keyword in EXCLUDED_KEYWORDS)

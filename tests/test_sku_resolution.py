"""
Tests for SKU normalization and resolution.
"""
import unittest

import pytest

from inventory_engine.core.sku_resolution import (
    SkuResolution, SkuResolver, follow_mappings, validate_new_mapping
)
from inventory_engine.core.sku_rules import (
    base_sku, display_group_base, is_excluded_product, is_variant_sku, normalize_sku
)
from inventory_engine.exceptions import ConflictError, CycleDetected, ValidationError


class TestSkuRules(unittest.TestCase):

    def test_normalize(self):
        self.assertEqual(normalize_sku('  gbcvantage '), 'GBCVANTAGE')
        for blank in (None, '', '   '):
            with pytest.raises(ValidationError):
                normalize_sku(blank)

    def test_variant_suffix(self):
        self.assertTrue(is_variant_sku('GBCVANTAGEP'))
        self.assertFalse(is_variant_sku('GBCVANTAGE'))
        self.assertEqual(base_sku('GBCVANTAGEP'), 'GBCVANTAGE')
        self.assertEqual(base_sku('GBCVANTAGE'), 'GBCVANTAGE')
        self.assertFalse(is_variant_sku('P'))

    def test_display_group_base(self):
        self.assertEqual(display_group_base('GBCVANTAGE-BALL'), 'GBCVANTAGE')
        self.assertEqual(display_group_base('GBCVANTAGEP-BALL'), 'GBCVANTAGE')
        self.assertEqual(display_group_base('gbcvantagep'), 'GBCVANTAGE')

    def test_excluded_products(self):
        self.assertTrue(is_excluded_product('NECK01', '14k Gold Paperclip Necklace'))
        self.assertFalse(is_excluded_product('GBCVANTAGE', 'Vantage Golf Ball Display Case'))


class TestSkuResolver(unittest.TestCase):
    """Test cases for SkuResolver."""

    def test_direct_catalog_hit(self):
        resolver = SkuResolver({}, ['GBCVANTAGE'])
        resolution = resolver.resolve('gbcvantage')

        self.assertEqual(resolution.canonical_sku, 'GBCVANTAGE')
        self.assertEqual(resolution.method, SkuResolution.DIRECT)

    def test_mapping_resolves_to_target(self):
        resolver = SkuResolver({'A': 'B'}, ['B'])

        self.assertEqual(resolver.resolve('A').canonical_sku, 'B')
        self.assertEqual(resolver.resolve('A').method, SkuResolution.MAPPED)

    def test_mapping_is_authoritative_without_catalog_row(self):
        resolver = SkuResolver({'A': 'B'}, [])

        self.assertEqual(resolver.resolve('A').canonical_sku, 'B')

    def test_chain_resolves_to_terminal(self):
        resolver = SkuResolver({'A': 'B', 'B': 'C'}, ['C'])
        resolution = resolver.resolve('A')

        self.assertEqual(resolution.canonical_sku, 'C')
        self.assertEqual(resolution.chain, ['A', 'B', 'C'])

    def test_personalised_variant_uses_base(self):
        resolver = SkuResolver({}, ['GBCVANTAGE'])
        resolution = resolver.resolve('GBCVANTAGEP')

        self.assertEqual(resolution.canonical_sku, 'GBCVANTAGE')
        self.assertEqual(resolution.method, SkuResolution.VARIANT)

    def test_variant_in_catalog_is_not_stripped(self):
        resolver = SkuResolver({}, ['B1-VANT-GT-C1-P', 'B1-VANT-GT-C1-'])

        self.assertEqual(resolver.resolve('B1-VANT-GT-C1-P').canonical_sku, 'B1-VANT-GT-C1-P')

    def test_ball_suffix_is_never_stripped(self):
        resolver = SkuResolver({}, ['GBCVANTAGE'])
        resolution = resolver.resolve('GBCVANTAGE-BALL')

        self.assertTrue(resolution.is_unmapped)
        self.assertIsNone(resolution.canonical_sku)

    def test_unknown_sku_is_unmapped(self):
        resolution = SkuResolver({'A': 'B'}, ['B']).resolve('XYZ')

        self.assertTrue(resolution.is_unmapped)
        self.assertEqual(resolution.to_dict()['method'], 'unmapped')

    def test_stored_cycle_is_detected(self):
        resolver = SkuResolver({'A': 'B', 'B': 'C', 'C': 'A'}, ['C'])

        with pytest.raises(CycleDetected):
            resolver.resolve('A')


class TestMappingValidation(unittest.TestCase):

    def test_follow_mappings(self):
        terminal, chain = follow_mappings('A', {'A': 'B', 'B': 'C'})

        self.assertEqual(terminal, 'C')
        self.assertEqual(chain, ['A', 'B', 'C'])

    def test_cycle_rejected(self):
        with pytest.raises(CycleDetected) as exc_info:
            validate_new_mapping('C', 'A', {'A': 'B', 'B': 'C'})

        self.assertIsInstance(exc_info.value, ConflictError)
        self.assertEqual(exc_info.value.code, 'CYCLE_DETECTED')

    def test_self_mapping_rejected(self):
        with pytest.raises(ValidationError):
            validate_new_mapping('A', 'A', {})

    def test_extending_a_chain_is_allowed(self):
        validate_new_mapping('D', 'A', {'A': 'B', 'B': 'C'})


if __name__ == '__main__':
    unittest.main()

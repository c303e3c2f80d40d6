"""
Tests for BOM explosion.
"""
import unittest
from datetime import date, timedelta

import pytest

from inventory_engine.core.bom_explosion import SalesWindow, explode
from inventory_engine.core.sku_resolution import SkuResolver
from inventory_engine.exceptions import DataQualityWarning, ValidationError


class TestSalesWindow(unittest.TestCase):

    def test_window_is_inclusive(self):
        window = SalesWindow(date(2024, 1, 30), 30)

        self.assertEqual(window.start, date(2024, 1, 1))
        self.assertEqual(window.end, date(2024, 1, 30))
        self.assertTrue(window.contains(date(2024, 1, 1)))
        self.assertFalse(window.contains(date(2023, 12, 31)))
        self.assertFalse(window.contains(date(2024, 1, 31)))

    def test_window_needs_a_day(self):
        with pytest.raises(ValidationError):
            SalesWindow(date(2024, 1, 30), 0)


class TestExplode(unittest.TestCase):
    """Test cases for explode."""

    def setUp(self):
        self.day = date(2024, 3, 15)
        self.bom = {
            'PROD-A': [(1, 2), (2, 1)],
            'PROD-B': [(1, 3)],
        }
        self.resolver = SkuResolver({}, ['PROD-A', 'PROD-B', 'NOBOM'])

    def test_shared_component_accumulates_from_each_product(self):
        events = [('PROD-A', 5, self.day), ('PROD-B', 2, self.day)]
        result = explode(events, self.resolver, self.bom)

        self.assertEqual(result.consumption, {1: 16, 2: 5})
        self.assertEqual(result.events_used, 2)
        self.assertEqual(result.warnings, [])

    def test_unmapped_and_missing_bom_are_reported_not_counted(self):
        events = [
            ('PROD-A', 5, self.day),
            ('UNKNOWN', 4, self.day),
            ('NOBOM', 3, self.day),
            ('NOBOM', 1, self.day),
        ]
        result = explode(events, self.resolver, self.bom)

        self.assertEqual(result.consumption, {1: 10, 2: 5})
        self.assertEqual(result.events_total, 4)
        self.assertEqual(result.events_used, 1)
        self.assertEqual(result.units_excluded, 8)
        self.assertEqual(result.warnings, [
            DataQualityWarning(DataQualityWarning.MISSING_BOM, 'NOBOM', events=2, units=4),
            DataQualityWarning(DataQualityWarning.UNMAPPED_SKU, 'UNKNOWN', events=1, units=4),
        ])

    def test_mapping_cycle_is_reported_not_raised(self):
        resolver = SkuResolver({'X1': 'X2', 'X2': 'X1'}, ['PROD-A'])
        events = [('x1', 3, self.day), ('PROD-A', 1, self.day), ('X2', 2, self.day)]

        result = explode(events, resolver, self.bom)

        self.assertEqual(result.consumption, {1: 2, 2: 1})
        self.assertEqual(result.units_excluded, 5)
        self.assertEqual(result.warnings, [
            DataQualityWarning(DataQualityWarning.MAPPING_CYCLE, 'X1', events=1, units=3),
            DataQualityWarning(DataQualityWarning.MAPPING_CYCLE, 'X2', events=1, units=2),
        ])

    def test_exactness(self):
        events = [
            ('PROD-A', 1, self.day), ('prod-a', 7, self.day), ('PROD-B', 4, self.day),
            ('PROD-AP', 2, self.day), ('PROD-B', 9, self.day),
        ]
        result = explode(events, self.resolver, self.bom)

        expected = {}
        for sku, qty, _ in events:
            canonical = self.resolver.resolve(sku).canonical_sku
            for component_id, per_unit in self.bom[canonical]:
                expected[component_id] = expected.get(component_id, 0) + qty * per_unit

        self.assertEqual(result.consumption, expected)

    def test_events_outside_window_ignored(self):
        window = SalesWindow(self.day, 7)
        events = [
            ('PROD-A', 1, self.day),
            ('PROD-A', 10, self.day - timedelta(days=6)),
            ('PROD-A', 100, self.day - timedelta(days=7)),
            ('PROD-A', 1000, self.day + timedelta(days=1)),
        ]
        result = explode(events, self.resolver, self.bom, window)

        self.assertEqual(result.consumption, {1: 22, 2: 11})
        self.assertEqual(result.events_total, 2)

    def test_mapped_legacy_sku_counts_as_canonical(self):
        bom = {'B1-VANT-GT-C1-P': [(10, 1), (11, 2)]}
        resolver = SkuResolver({'GBCVANTAGEP': 'B1-VANT-GT-C1-P'}, ['B1-VANT-GT-C1-P'])

        legacy = explode([('GBCVANTAGEP', 5, self.day)], resolver, bom)
        canonical = explode([('B1-VANT-GT-C1-P', 5, self.day)], resolver, bom)

        self.assertEqual(legacy.consumption, {10: 5, 11: 10})
        self.assertEqual(legacy.consumption, canonical.consumption)

    def test_to_dict(self):
        result = explode([('UNKNOWN', 2, self.day)], self.resolver, self.bom)
        data = result.to_dict()

        self.assertEqual(data['consumption'], {})
        self.assertEqual(data['data_quality_warnings'][0]['code'], 'UNMAPPED_SKU')


if __name__ == '__main__':
    unittest.main()

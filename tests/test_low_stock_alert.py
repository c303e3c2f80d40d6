"""
Tests for the daily low-stock alert batch.
"""
from unittest.mock import patch

from inventory_engine.batch.low_stock_alert import (
    LowStockAlertData, LowStockItem, build_low_stock_alert, run_low_stock_alert
)
from inventory_engine.exceptions import CalculationError
from inventory_engine.models import SkuMapping, StockAdjustment
from tests.base import AS_OF, DatabaseTestCase


class TestLowStockAlert(DatabaseTestCase):
    """Velocity of 1 unit/day for every component, critical at 10 days, warning at 17."""

    def setUp(self):
        super().setUp()
        self.ids = {}
        for sku, on_hand in (('PACK-BOX', 0), ('CASE-MAH', 8), ('BASE-B1', 5),
                             ('ACC-STAND', 15), ('PLAQUE-GT', 100)):
            self.ids[sku] = self.make_component(sku, on_hand=on_hand, lead_time_days=7, safety_stock_days=3)
            self.add_bom('GBCVANTAGE', self.ids[sku], 1)
        self.add_sales('GBCVANTAGE', 30, AS_OF)
        self.add_sales('MYSTERY-SKU', 2, AS_OF)

    def skus(self, items):
        return [item.sku for item in items]

    def test_partitions_by_status(self):
        report = build_low_stock_alert(self.session, AS_OF)

        self.assertEqual(self.skus(report.out_of_stock_items), ['PACK-BOX'])
        self.assertEqual(self.skus(report.critical_items), ['BASE-B1', 'CASE-MAH'])
        self.assertEqual(self.skus(report.warning_items), ['ACC-STAND'])
        self.assertEqual(report.total_low_stock_items, 4)
        self.assertTrue(report.has_alerts)
        self.assertEqual(report.data_quality_warnings[0]['sku'], 'MYSTERY-SKU')

        critical = report.critical_items[0]
        self.assertEqual(critical.days_remaining, 5.0)
        self.assertEqual(critical.suggested_order_qty, 55)

    def test_to_dict(self):
        data = build_low_stock_alert(self.session, AS_OF).to_dict()

        self.assertEqual(data['date'], '2024-03-31')
        self.assertEqual(data['total_low_stock_items'], 4)
        self.assertEqual(data['warning_items'][0]['status'], 'warning')

    def test_config_can_drop_warnings_and_cap_sections(self):
        with patch('inventory_engine.batch.low_stock_alert.config') as mock_config:
            mock_config.alert_config = {'include_warning': False, 'max_items': 1}
            report = build_low_stock_alert(self.session, AS_OF)

        self.assertEqual(report.warning_items, [])
        self.assertEqual(self.skus(report.critical_items), ['BASE-B1'])

    def test_no_alerts(self):
        report = LowStockAlertData(AS_OF, [], [], [])

        self.assertFalse(report.has_alerts)
        self.assertEqual(report.to_dict()['data_quality_warnings'], [])

    def test_item_from_forecast_keeps_report_fields(self):
        item = LowStockItem.from_forecast({'sku': 'CASE-MAH', 'status': 'critical', 'extra': 1})

        self.assertEqual(item.sku, 'CASE-MAH')
        self.assertNotIn('extra', item.to_dict())
        self.assertIsNone(item.velocity)

    def test_run_batch(self):
        case_id = self.ids['CASE-MAH']

        results = run_low_stock_alert(AS_OF)

        self.assertTrue(results['success'])
        self.assertEqual(results['report'].total_low_stock_items, 4)
        self.assertTrue(results['on_order_check']['consistent'])
        self.assertEqual(results['mapping_check'], {'checked': 0, 'cycles': []})
        self.assertIsNotNone(results['duration'])

        # Reruns see the same state and write nothing
        again = run_low_stock_alert(AS_OF)
        self.assertEqual(again['report'].to_dict(), results['report'].to_dict())
        self.assertEqual(self.stock(case_id).on_hand, 8)
        self.assertEqual(self.session.query(StockAdjustment).count(), 0)

    def test_run_batch_survives_mapping_cycle(self):
        self.session.add_all([SkuMapping(old_sku='OLD-A', current_sku='OLD-B'),
                              SkuMapping(old_sku='OLD-B', current_sku='OLD-A')])
        self.session.commit()
        self.add_sales('OLD-A', 6, AS_OF)

        results = run_low_stock_alert(AS_OF)

        self.assertTrue(results['success'])
        self.assertEqual(results['report'].total_low_stock_items, 4)
        self.assertIn({'code': 'MAPPING_CYCLE', 'sku': 'OLD-A', 'events': 1, 'units': 6},
                      results['report'].data_quality_warnings)
        self.assertEqual(results['mapping_check']['checked'], 2)
        self.assertEqual(sorted(c['old_sku'] for c in results['mapping_check']['cycles']), ['OLD-A', 'OLD-B'])

    def test_run_batch_reports_failure(self):
        with patch('inventory_engine.batch.low_stock_alert.build_low_stock_alert',
                   side_effect=CalculationError('bad window')):
            results = run_low_stock_alert(AS_OF)

        self.assertFalse(results['success'])
        self.assertEqual(results['error'], 'bad window')
        self.assertIsNone(results['report'])

"""
Tests for the velocity and stock status calculator.
"""
import unittest
from datetime import date

import pytest

from inventory_engine.core.forecast import (
    StockStatus, calculate_reorder_date, calculate_suggested_order_qty,
    calculate_velocity, calculate_velocity_status, get_stock_status, resolve_lead_time
)
from inventory_engine.exceptions import CalculationError


class TestVelocityStatus(unittest.TestCase):
    """Test cases for calculate_velocity_status."""

    def test_healthy_stock_is_ok(self):
        """available=40, 60 units over 30 days, lead 7, safety 3."""
        result = calculate_velocity_status(40, 60, window_days=30, lead_time_days=7, safety_stock_days=3)

        self.assertEqual(result.velocity, 2.0)
        self.assertEqual(result.days_remaining, 20.0)
        self.assertEqual(result.reorder_point, 20.0)
        self.assertEqual(result.status, StockStatus.OK)

    def test_low_stock_is_critical(self):
        result = calculate_velocity_status(5, 60, window_days=30, lead_time_days=7, safety_stock_days=3)

        self.assertEqual(result.days_remaining, 2.5)
        self.assertEqual(result.status, StockStatus.CRITICAL)
        self.assertIn('2.5', result.status_reason)

    def test_zero_available_is_out_of_stock(self):
        for consumed in (0, 60, 600):
            result = calculate_velocity_status(0, consumed, window_days=30, lead_time_days=7, safety_stock_days=3)
            self.assertEqual(result.status, StockStatus.OUT_OF_STOCK)

    def test_warning_band(self):
        # 15 days remaining: above 10 (lead + safety), within 17 (+7 buffer)
        result = calculate_velocity_status(30, 60, window_days=30, lead_time_days=7, safety_stock_days=3)

        self.assertEqual(result.status, StockStatus.WARNING)

    def test_boundaries_are_inclusive(self):
        # exactly 10 days -> critical, exactly 17 days -> warning
        critical = calculate_velocity_status(20, 60, window_days=30, lead_time_days=7, safety_stock_days=3)
        warning = calculate_velocity_status(34, 60, window_days=30, lead_time_days=7, safety_stock_days=3)

        self.assertEqual(critical.status, StockStatus.CRITICAL)
        self.assertEqual(warning.status, StockStatus.WARNING)

    def test_no_consumption_with_stock_is_ok(self):
        result = calculate_velocity_status(12, 0, window_days=30, lead_time_days=7, safety_stock_days=3)

        self.assertEqual(result.velocity, 0.0)
        self.assertIsNone(result.days_remaining)
        self.assertEqual(result.reorder_point, 0.0)
        self.assertEqual(result.status, StockStatus.OK)

    def test_null_lead_time_uses_configured_default(self):
        result = calculate_velocity_status(40, 60, window_days=30, lead_time_days=None, safety_stock_days=3)

        self.assertEqual(result.lead_time_days, 14)
        self.assertEqual(result.reorder_point, 2.0 * 17)

    def test_status_never_worsens_as_available_grows(self):
        for consumed in (0, 15, 60, 300):
            previous = None
            for available in range(0, 200):
                status = calculate_velocity_status(
                    available, consumed, window_days=30, lead_time_days=7, safety_stock_days=3
                ).status
                if previous is not None:
                    self.assertLessEqual(status.severity, previous.severity,
                                         f"available={available} consumed={consumed}")
                previous = status

    def test_to_dict(self):
        data = calculate_velocity_status(40, 60, window_days=30, lead_time_days=7, safety_stock_days=3).to_dict()

        self.assertEqual(data['status'], 'ok')
        self.assertEqual(data['lead_time_days'], 7)
        self.assertEqual(data['safety_stock_days'], 3)


class TestForecastHelpers(unittest.TestCase):
    """Test cases for the smaller forecast functions."""

    def test_velocity_rejects_bad_window(self):
        with pytest.raises(CalculationError):
            calculate_velocity(10, 0)
        with pytest.raises(CalculationError):
            calculate_velocity(-1, 30)

    def test_get_stock_status_precedence(self):
        status, _ = get_stock_status(0, 1.0, 7, 3)
        self.assertEqual(status, StockStatus.OUT_OF_STOCK)

        status, reason = get_stock_status(5, None, 7, 3)
        self.assertEqual(status, StockStatus.OK)
        self.assertEqual(reason, 'No sales velocity data')

    def test_resolve_lead_time_fallbacks(self):
        self.assertEqual(resolve_lead_time(5, 21, 14), 5)
        self.assertEqual(resolve_lead_time(0, 21, 14), 0)
        self.assertEqual(resolve_lead_time(None, 21, 14), 21)
        self.assertEqual(resolve_lead_time(None, None, 9), 9)
        self.assertEqual(resolve_lead_time(None), 14)

    def test_reorder_date(self):
        today = date(2024, 1, 1)

        self.assertEqual(calculate_reorder_date(20.0, 7, 3, today), date(2024, 1, 11))
        self.assertEqual(calculate_reorder_date(2.5, 7, 3, today), today)
        self.assertIsNone(calculate_reorder_date(None, 7, 3, today))

    def test_suggested_order_qty_rounds_up_to_moq(self):
        # 2/day * 60 days = 120 needed, 40 available -> 80 short -> 4 x 25
        self.assertEqual(calculate_suggested_order_qty(2.0, 40, 0, min_order_qty=25), 100)
        self.assertEqual(calculate_suggested_order_qty(2.0, 40, 0, min_order_qty=1), 80)

    def test_suggested_order_qty_counts_on_order(self):
        self.assertEqual(calculate_suggested_order_qty(2.0, 40, 80, min_order_qty=25), 0)
        self.assertEqual(calculate_suggested_order_qty(0.0, 0, 0, min_order_qty=10), 0)

    def test_severity_order(self):
        ordered = [StockStatus.OK, StockStatus.WARNING, StockStatus.CRITICAL, StockStatus.OUT_OF_STOCK]
        self.assertEqual(sorted(ordered, key=lambda s: s.severity), ordered)


if __name__ == '__main__':
    unittest.main()

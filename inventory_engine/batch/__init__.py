from .low_stock_alert import (
    LowStockItem, LowStockAlertData, build_low_stock_alert,
    check_on_order_consistency, run_low_stock_alert
)

__all__ = [
    'LowStockItem',
    'LowStockAlertData',
    'build_low_stock_alert',
    'check_on_order_consistency',
    'run_low_stock_alert'
]

# inventory_engine/batch/low_stock_alert.py
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from inventory_engine.config import config
from inventory_engine.core.forecast import StockStatus
from inventory_engine.db import session_scope
from inventory_engine.logging_setup import get_logger, logger as engine_logger
from inventory_engine.services.forecast_service import ForecastService
from inventory_engine.services.sku_mapping_service import SkuMappingService
from inventory_engine.services.stock_service import StockService

logger = get_logger('low_stock_alert')

ITEM_FIELDS = (
    'component_id', 'sku', 'name', 'category', 'status', 'on_hand', 'available',
    'on_order', 'velocity', 'days_remaining', 'reorder_point', 'lead_time',
    'safety_days', 'suggested_order_qty'
)


class LowStockItem:
    """One component in the daily low-stock report."""

    def __init__(self, **fields):
        for name in ITEM_FIELDS:
            setattr(self, name, fields.get(name))

    @classmethod
    def from_forecast(cls, item: Dict) -> 'LowStockItem':
        return cls(**{name: item.get(name) for name in ITEM_FIELDS})

    def __repr__(self):
        return f"LowStockItem({self.sku}, status={self.status}, available={self.available})"

    def to_dict(self) -> Dict:
        return {name: getattr(self, name) for name in ITEM_FIELDS}


class LowStockAlertData:
    """Report handed to the notification sender."""

    def __init__(
        self,
        report_date: date,
        out_of_stock_items: List[LowStockItem],
        critical_items: List[LowStockItem],
        warning_items: List[LowStockItem],
        data_quality_warnings: Optional[List[Dict]] = None
    ):
        self.date = report_date
        self.out_of_stock_items = out_of_stock_items
        self.critical_items = critical_items
        self.warning_items = warning_items
        self.data_quality_warnings = data_quality_warnings or []

    @property
    def total_low_stock_items(self) -> int:
        return len(self.out_of_stock_items) + len(self.critical_items) + len(self.warning_items)

    @property
    def has_alerts(self) -> bool:
        return self.total_low_stock_items > 0

    def to_dict(self) -> Dict:
        return {
            'date': self.date.isoformat(),
            'out_of_stock_items': [i.to_dict() for i in self.out_of_stock_items],
            'critical_items': [i.to_dict() for i in self.critical_items],
            'warning_items': [i.to_dict() for i in self.warning_items],
            'total_low_stock_items': self.total_low_stock_items,
            'data_quality_warnings': self.data_quality_warnings
        }


def _most_urgent_first(item: Dict):
    days = item['days_remaining']
    return (days if days is not None else float('inf'), item['sku'])


def build_low_stock_alert(session: Session, as_of: Optional[date] = None) -> LowStockAlertData:
    """Partition active components by forecast status. Writes nothing.

    Args:
        session: Database session
        as_of: Report date, last day of the sales window

    Returns:
        LowStockAlertData
    """
    as_of = as_of or date.today()
    alert_config = config.alert_config

    overview = ForecastService(session).stock_overview(as_of=as_of)

    partitions = {
        StockStatus.OUT_OF_STOCK.value: [],
        StockStatus.CRITICAL.value: [],
        StockStatus.WARNING.value: []
    }
    for item in overview['items']:
        if item['status'] in partitions:
            partitions[item['status']].append(item)

    if not alert_config['include_warning']:
        partitions[StockStatus.WARNING.value] = []

    max_items = alert_config['max_items']

    def to_items(rows):
        rows = sorted(rows, key=_most_urgent_first)
        if max_items:
            rows = rows[:max_items]
        return [LowStockItem.from_forecast(row) for row in rows]

    return LowStockAlertData(
        report_date=as_of,
        out_of_stock_items=to_items(partitions[StockStatus.OUT_OF_STOCK.value]),
        critical_items=to_items(partitions[StockStatus.CRITICAL.value]),
        warning_items=to_items(partitions[StockStatus.WARNING.value]),
        data_quality_warnings=overview['data_quality_warnings']
    )


def check_on_order_consistency() -> Dict:
    """Read-only reconciliation of on_order against open purchase order lines."""
    logger.info("Checking on_order consistency")

    with session_scope() as session:
        results = StockService(session).reconcile_on_order()

    if not results['consistent']:
        logger.warning(f"on_order drift found on {len(results['drifts'])} component(s)")
    return results


def check_mapping_integrity() -> Dict:
    """Report stored SKU mapping chains that cycle. Their sales are left out of demand."""
    logger.info("Checking SKU mappings")

    with session_scope() as session:
        results = SkuMappingService(session).check_mappings()

    if results['cycles']:
        logger.warning(f"{len(results['cycles'])} SKU mapping(s) are part of a cycle")
    return results


def run_low_stock_alert(as_of: Optional[date] = None) -> Dict:
    """Run the daily low-stock alert batch.

    Pure recompute over current state, safe to rerun.

    Args:
        as_of: Report date, defaults to today

    Returns:
        Dictionary with job results and the report
    """
    as_of = as_of or date.today()
    log_info = engine_logger.batch_start_log('low_stock_alert', {'as_of': as_of.isoformat()})
    start_time = log_info['start_time']

    results = {
        'start_time': start_time,
        'end_time': None,
        'duration': None,
        'report': None,
        'on_order_check': None,
        'mapping_check': None
    }

    try:
        with session_scope() as session:
            report = build_low_stock_alert(session, as_of)
        results['report'] = report
        results['on_order_check'] = check_on_order_consistency()
        results['mapping_check'] = check_mapping_integrity()

        results['end_time'] = datetime.now()
        results['duration'] = results['end_time'] - start_time
        results['success'] = True

        logger.info(
            f"Low-stock alert for {as_of}: {len(report.out_of_stock_items)} out of stock, "
            f"{len(report.critical_items)} critical, {len(report.warning_items)} warning"
        )
        engine_logger.batch_end_log(log_info, True, {
            'total_low_stock_items': report.total_low_stock_items,
            'data_quality_warnings': len(report.data_quality_warnings)
        })
        return results

    except Exception as e:
        logger.error(f"Error during low-stock alert batch: {str(e)}", exc_info=True)

        results['end_time'] = datetime.now()
        results['duration'] = results['end_time'] - start_time
        results['success'] = False
        results['error'] = str(e)

        engine_logger.batch_end_log(log_info, False, {'error': str(e)})
        return results

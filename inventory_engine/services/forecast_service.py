# inventory_engine/services/forecast_service.py
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from inventory_engine.config import config
from inventory_engine.core.bom_explosion import ExplosionResult, SalesWindow, explode
from inventory_engine.core.forecast import (
    StockStatus, calculate_reorder_date, calculate_suggested_order_qty,
    calculate_velocity_status, resolve_lead_time
)
from inventory_engine.exceptions import ValidationError
from inventory_engine.models import Component, SalesLine, StockLevel
from inventory_engine.services.bom_service import BomService
from inventory_engine.services.catalog_service import CatalogService
from inventory_engine.services.sku_mapping_service import SkuMappingService

logger = logging.getLogger(__name__)


class ForecastService:
    """Read-only forecasting over the catalog, stock levels and the sales feed."""

    def __init__(self, session: Session):
        """Initialize the forecast service.

        Args:
            session: Database session
        """
        self.session = session

    def get_sales_events(self, window: SalesWindow) -> List[Tuple[str, int, date]]:
        """Sales lines in the window as (raw_sku, quantity, order_date)."""
        rows = self.session.query(SalesLine.raw_sku, SalesLine.quantity, SalesLine.order_date).filter(
            SalesLine.order_date >= window.start,
            SalesLine.order_date <= window.end
        ).all()
        return [(sku, quantity or 0, order_date) for sku, quantity, order_date in rows
                if sku and sku.strip()]

    def compute_consumption(self, as_of: Optional[date] = None, window_days: Optional[int] = None) -> ExplosionResult:
        """Component consumption over the trailing window.

        Args:
            as_of: Last day of the window, defaults to today
            window_days: Window length, defaults to the configured velocity window

        Returns:
            ExplosionResult
        """
        window = SalesWindow(
            as_of or date.today(),
            window_days or config.business_rules['velocity_window_days']
        )
        resolver = SkuMappingService(self.session).build_resolver()
        bom_index = BomService(self.session).get_bom_index()

        result = explode(self.get_sales_events(window), resolver, bom_index, window)
        if result.units_excluded:
            logger.warning(
                f"{result.units_excluded} unit(s) excluded from consumption over {window}: "
                f"{len(result.warnings)} data quality warning(s)"
            )
        return result

    def resolve_lead_time(self, component: Component) -> int:
        supplier_lead_time = component.supplier.default_lead_time_days if component.supplier else None
        return resolve_lead_time(component.lead_time_days, supplier_lead_time)

    def forecast_component(
        self,
        component: Component,
        consumed: int,
        window_days: int,
        as_of: date
    ) -> Dict:
        """Stock level and forecast figures for one component."""
        level = component.stock_level or StockLevel(on_hand=0, reserved=0, on_order=0)
        rules = config.business_rules

        lead_time = self.resolve_lead_time(component)
        safety_days = component.safety_stock_days if component.safety_stock_days is not None \
            else rules['default_safety_stock_days']
        available = level.available
        on_order = level.on_order or 0

        velocity_status = calculate_velocity_status(
            available,
            consumed,
            window_days=window_days,
            lead_time_days=lead_time,
            safety_stock_days=safety_days,
            warning_buffer_days=rules['warning_buffer_days']
        )
        reorder_date = calculate_reorder_date(velocity_status.days_remaining, lead_time, safety_days, as_of)

        return {
            'component_id': component.id,
            'sku': component.sku,
            'name': component.name,
            'category': component.category.value if component.category else None,
            'category_label': component.category.label if component.category else None,
            'supplier_id': component.supplier_id,
            'on_hand': level.on_hand or 0,
            'reserved': level.reserved or 0,
            'available': available,
            'on_order': on_order,
            'consumed': consumed,
            'velocity': round(velocity_status.velocity, 4),
            'days_remaining': velocity_status.days_remaining,
            'reorder_point': velocity_status.reorder_point,
            'reorder_date': reorder_date.isoformat() if reorder_date else None,
            'lead_time': lead_time,
            'safety_days': safety_days,
            'status': velocity_status.status.value,
            'status_reason': velocity_status.status_reason,
            'suggested_order_qty': calculate_suggested_order_qty(
                velocity_status.velocity, available, on_order, component.min_order_qty
            )
        }

    def stock_overview(
        self,
        as_of: Optional[date] = None,
        window_days: Optional[int] = None,
        status: Optional[str] = None,
        category: Optional[str] = None
    ) -> Dict:
        """Per-component stock and forecast for every active component.

        Args:
            as_of: Last day of the sales window, defaults to today
            window_days: Window length, defaults to the configured velocity window
            status: Optional status filter (ok, warning, critical, out_of_stock)
            category: Optional category filter

        Returns:
            Dictionary with items, summary counts over all active components
            and data quality warnings
        """
        as_of = as_of or date.today()
        window_days = window_days or config.business_rules['velocity_window_days']

        status_filter = None
        if status and status != 'all':
            try:
                status_filter = StockStatus(status.strip().lower())
            except ValueError:
                raise ValidationError(f"Invalid stock status: {status}", details={'status': status})

        components = CatalogService(self.session).get_components(active_only=True, category=category)

        explosion = self.compute_consumption(as_of, window_days)

        summary = {
            'total': 0,
            'ok': 0,
            'warning': 0,
            'critical': 0,
            'out_of_stock': 0,
            'on_order': 0,
            'window_days': window_days
        }
        items = []
        for component in components:
            item = self.forecast_component(
                component, explosion.consumption.get(component.id, 0), window_days, as_of
            )
            summary['total'] += 1
            summary[item['status']] += 1
            if item['on_order'] > 0:
                summary['on_order'] += 1

            if status_filter is None or item['status'] == status_filter.value:
                items.append(item)

        return {
            'as_of': as_of.isoformat(),
            'items': items,
            'summary': summary,
            'data_quality_warnings': [w.to_dict() for w in explosion.warnings]
        }

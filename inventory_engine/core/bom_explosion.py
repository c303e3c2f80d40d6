# inventory_engine/core/bom_explosion.py
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from inventory_engine.core.sku_resolution import SkuResolver
from inventory_engine.core.sku_rules import normalize_sku
from inventory_engine.exceptions import CycleDetected, DataQualityWarning, ValidationError

# product_sku -> [(component_id, quantity per unit sold)]
BomIndex = Dict[str, List[Tuple[int, int]]]


class SalesWindow:
    """Trailing window of whole days ending on (and including) as_of."""

    def __init__(self, as_of: date, days: int):
        if days is None or days < 1:
            raise ValidationError("Window must cover at least one day", details={'days': days})
        self.as_of = as_of
        self.days = days

    @property
    def start(self) -> date:
        return self.as_of - timedelta(days=self.days - 1)

    @property
    def end(self) -> date:
        return self.as_of

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __repr__(self):
        return f"SalesWindow({self.start} .. {self.end}, days={self.days})"


class ExplosionResult:
    """Component consumption for one window plus the data problems met on the way."""

    def __init__(self):
        self.consumption: Dict[int, int] = {}
        self.events_total = 0
        self.events_used = 0
        self.units_excluded = 0
        self._warnings: Dict[Tuple[str, str], DataQualityWarning] = {}

    def add_consumption(self, component_id: int, quantity: int):
        self.consumption[component_id] = self.consumption.get(component_id, 0) + quantity

    def warn(self, code: str, sku: str, quantity: int):
        key = (code, sku)
        if key not in self._warnings:
            self._warnings[key] = DataQualityWarning(code, sku)
        self._warnings[key].add(quantity)
        self.units_excluded += quantity

    @property
    def warnings(self) -> List[DataQualityWarning]:
        return sorted(self._warnings.values(), key=lambda w: (w.code, w.sku))

    def to_dict(self) -> Dict:
        return {
            'consumption': dict(self.consumption),
            'events_total': self.events_total,
            'events_used': self.events_used,
            'units_excluded': self.units_excluded,
            'data_quality_warnings': [w.to_dict() for w in self.warnings]
        }


def explode(
    sales_events: Iterable[Tuple[str, int, date]],
    resolver: SkuResolver,
    bom_index: BomIndex,
    window: Optional[SalesWindow] = None
) -> ExplosionResult:
    """Expand product-level sales into component-level consumption.

    Each event's SKU is resolved to its canonical SKU and every bill of
    materials row for that SKU adds ``qty_sold * entry_quantity`` to the
    component total. Components shared between products accumulate demand
    from each product independently.

    Args:
        sales_events: Iterable of (product_sku, qty_sold, sale_date)
        resolver: SKU resolver built from the current mappings and catalog
        bom_index: Bill of materials keyed by canonical product SKU
        window: Optional window; events outside it are ignored

    Returns:
        ExplosionResult with consumption per component_id. Unmapped SKUs,
        SKUs caught in a mapping cycle and SKUs without bill of materials
        rows are excluded from the totals and reported as data quality
        warnings.
    """
    result = ExplosionResult()

    for product_sku, qty_sold, sale_date in sales_events:
        if window is not None and not window.contains(sale_date):
            continue
        result.events_total += 1

        try:
            resolution = resolver.resolve(product_sku)
        except CycleDetected:
            result.warn(DataQualityWarning.MAPPING_CYCLE, normalize_sku(product_sku), qty_sold)
            continue

        if resolution.is_unmapped:
            result.warn(DataQualityWarning.UNMAPPED_SKU, resolution.raw_sku, qty_sold)
            continue

        entries = bom_index.get(resolution.canonical_sku)
        if not entries:
            result.warn(DataQualityWarning.MISSING_BOM, resolution.canonical_sku, qty_sold)
            continue

        for component_id, per_unit in entries:
            result.add_consumption(component_id, qty_sold * per_unit)
        result.events_used += 1

    return result

from .catalog_service import CatalogService
from .bom_service import BomService
from .sku_mapping_service import SkuMappingService
from .stock_service import StockService
from .purchase_order_service import PurchaseOrderService
from .forecast_service import ForecastService

__all__ = [
    'CatalogService',
    'BomService',
    'SkuMappingService',
    'StockService',
    'PurchaseOrderService',
    'ForecastService'
]

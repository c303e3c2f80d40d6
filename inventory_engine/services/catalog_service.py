# inventory_engine/services/catalog_service.py
import logging
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_engine.core.sku_rules import normalize_sku
from inventory_engine.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from inventory_engine.models import (
    Brand, BomEntry, Component, ComponentCategory, ProductSku, ProductStatus,
    StockLevel, Supplier
)
from inventory_engine.utils.validation import require_int, require_non_negative_number, require_text

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for the long-lived catalog: brands, suppliers, components and product SKUs."""

    def __init__(self, session: Session):
        """Initialize the catalog service.

        Args:
            session: Database session
        """
        self.session = session

    def _commit(self, action: str):
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError(f"Failed to {action}: duplicate or invalid reference", details={'error': str(e.orig)})
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to {action}: {str(e)}")

    def create_brand(self, code: str, name: str) -> Brand:
        brand = Brand(code=require_text(code, 'code').upper(), name=require_text(name, 'name'))
        self.session.add(brand)
        self._commit('create brand')
        return brand

    def get_brand_by_code(self, code: str) -> Optional[Brand]:
        return self.session.query(Brand).filter(Brand.code == code.strip().upper()).first()

    def create_supplier(
        self,
        name: str,
        code: Optional[str] = None,
        default_lead_time_days: Optional[int] = None,
        min_order_qty: int = 1,
        min_order_value: float = 0.0,
        payment_terms: Optional[str] = None,
        currency: str = 'GBP'
    ) -> Supplier:
        """Create a supplier.

        Args:
            name: Supplier name
            code: Optional short code
            default_lead_time_days: Lead time used by components without their own
            min_order_qty: Minimum order quantity
            min_order_value: Minimum order value
            payment_terms: Free text payment terms
            currency: ISO currency code

        Returns:
            Created supplier
        """
        if default_lead_time_days is not None:
            default_lead_time_days = require_int(default_lead_time_days, 'default_lead_time_days', minimum=0)

        supplier = Supplier(
            name=require_text(name, 'name'),
            code=code.strip().upper() if code else None,
            default_lead_time_days=default_lead_time_days,
            min_order_qty=require_int(min_order_qty, 'min_order_qty', minimum=1),
            min_order_value=require_non_negative_number(min_order_value, 'min_order_value'),
            payment_terms=payment_terms,
            currency=(currency or 'GBP').upper()
        )
        self.session.add(supplier)
        self._commit('create supplier')
        return supplier

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.session.get(Supplier, supplier_id)
        if not supplier:
            raise NotFoundError(f"Supplier with ID {supplier_id} not found")
        return supplier

    def create_component(
        self,
        sku: str,
        name: str,
        category: Optional[str] = None,
        material: Optional[str] = None,
        variant: Optional[str] = None,
        safety_stock_days: int = 14,
        min_order_qty: int = 1,
        lead_time_days: Optional[int] = None,
        supplier_id: Optional[int] = None,
        brand_id: Optional[int] = None,
        unit_cost: Optional[float] = None,
        on_hand: int = 0
    ) -> Component:
        """Create a component together with its stock level.

        Args:
            sku: Component SKU
            name: Component name
            category: One of the ComponentCategory values
            material: Material code
            variant: Variant description
            safety_stock_days: Buffer days of stock to hold
            min_order_qty: Minimum order quantity
            lead_time_days: Lead time; None falls back to the supplier
            supplier_id: Preferred supplier
            brand_id: Owning brand
            unit_cost: Last known unit cost
            on_hand: Opening stock

        Returns:
            Created component
        """
        try:
            category_value = ComponentCategory.from_string(category) if category else None
        except ValueError as e:
            raise ValidationError(str(e))

        if lead_time_days is not None:
            lead_time_days = require_int(lead_time_days, 'lead_time_days', minimum=0)
        if supplier_id is not None:
            self.get_supplier(supplier_id)

        component = Component(
            sku=normalize_sku(sku),
            name=require_text(name, 'name'),
            category=category_value,
            material=material,
            variant=variant,
            safety_stock_days=require_int(safety_stock_days, 'safety_stock_days', minimum=0),
            min_order_qty=require_int(min_order_qty, 'min_order_qty', minimum=1),
            lead_time_days=lead_time_days,
            supplier_id=supplier_id,
            brand_id=brand_id,
            unit_cost=unit_cost,
            is_active=True
        )
        component.stock_level = StockLevel(
            on_hand=require_int(on_hand, 'on_hand', minimum=0),
            reserved=0,
            on_order=0
        )
        self.session.add(component)
        self._commit('create component')

        logger.info(f"Created component {component.sku} (id={component.id})")
        return component

    def get_component(self, component_id: int) -> Component:
        component = self.session.get(Component, component_id)
        if not component:
            raise NotFoundError(f"Component with ID {component_id} not found")
        return component

    def get_components(self, active_only: bool = True, category: Optional[str] = None) -> List[Component]:
        """Get components, ordered by name.

        Args:
            active_only: Only return active components
            category: Optional category filter

        Returns:
            List of components
        """
        query = self.session.query(Component)

        if active_only:
            query = query.filter(Component.is_active.is_(True))

        if category and category != 'all':
            try:
                query = query.filter(Component.category == ComponentCategory.from_string(category))
            except ValueError as e:
                raise ValidationError(str(e))

        return query.order_by(Component.name).all()

    def deactivate_component(self, component_id: int) -> Component:
        component = self.get_component(component_id)
        component.is_active = False
        self._commit('deactivate component')
        return component

    def create_product_sku(
        self,
        sku: str,
        name: Optional[str] = None,
        status: str = 'active',
        platforms: Optional[Iterable[str]] = None,
        brand_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> ProductSku:
        try:
            status_value = ProductStatus.from_string(status)
        except ValueError as e:
            raise ValidationError(str(e))

        product = ProductSku(
            sku=normalize_sku(sku),
            name=name,
            status=status_value,
            platforms=sorted({p.strip().lower() for p in (platforms or []) if p and p.strip()}),
            brand_id=brand_id,
            notes=notes
        )
        self.session.add(product)
        self._commit('create product SKU')
        return product

    def set_product_status(self, sku: str, status: str) -> ProductSku:
        product = self.session.query(ProductSku).filter(ProductSku.sku == normalize_sku(sku)).first()
        if not product:
            raise NotFoundError(f"Product SKU {sku} not found")
        try:
            product.status = ProductStatus.from_string(status)
        except ValueError as e:
            raise ValidationError(str(e))
        self._commit('update product SKU')
        return product

    def get_product_skus(self, status: Optional[str] = None, sellable_only: bool = False) -> List[ProductSku]:
        """Get product SKUs.

        Historic and discontinued SKUs remain valid forecast inputs; only
        sellable views exclude them.
        """
        query = self.session.query(ProductSku)

        if sellable_only:
            query = query.filter(ProductSku.status == ProductStatus.ACTIVE)
        elif status and status != 'all':
            try:
                query = query.filter(ProductSku.status == ProductStatus.from_string(status))
            except ValueError as e:
                raise ValidationError(str(e))

        return query.order_by(ProductSku.sku).all()

    def get_catalog_skus(self) -> Set[str]:
        """All SKUs the catalog knows: product SKUs plus SKUs with BOM rows."""
        skus = {row[0] for row in self.session.query(ProductSku.sku).all()}
        skus.update(row[0] for row in self.session.query(BomEntry.product_sku).distinct().all())
        return skus

    def get_status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ProductStatus}
        for product in self.session.query(ProductSku).all():
            counts[product.status.value] += 1
        return counts

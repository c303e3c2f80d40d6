# inventory_engine/services/bom_service.py
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_engine.core.bom_explosion import BomIndex
from inventory_engine.core.sku_rules import normalize_sku
from inventory_engine.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from inventory_engine.models import BomEntry, Component
from inventory_engine.utils.validation import require_int

logger = logging.getLogger(__name__)


def bom_entry_to_dict(entry: BomEntry) -> Dict:
    component = entry.component
    return {
        'id': entry.id,
        'product_sku': entry.product_sku,
        'brand_id': entry.brand_id,
        'component_id': entry.component_id,
        'quantity': entry.quantity,
        'notes': entry.notes,
        'component': {
            'id': component.id,
            'sku': component.sku,
            'name': component.name,
            'material': component.material,
            'variant': component.variant,
            'category': component.category.value if component.category else None
        } if component else None
    }


class BomService:
    """Service for bill of materials entries."""

    def __init__(self, session: Session):
        """Initialize the BOM service.

        Args:
            session: Database session
        """
        self.session = session

    def get_entry(self, entry_id: int) -> BomEntry:
        entry = self.session.get(BomEntry, entry_id)
        if not entry:
            raise NotFoundError(f"BOM entry with ID {entry_id} not found")
        return entry

    def create_entry(
        self,
        product_sku: str,
        component_id: int,
        quantity: int,
        brand_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> BomEntry:
        """Add a component to a product's bill of materials.

        Args:
            product_sku: Canonical product SKU
            component_id: Component consumed
            quantity: Units of the component per unit of product, at least 1
            brand_id: Optional owning brand
            notes: Optional notes

        Returns:
            Created BOM entry

        Raises:
            ValidationError: Missing SKU or quantity below 1
            NotFoundError: Unknown component
            ConflictError: The component is already in this product's BOM
        """
        sku = normalize_sku(product_sku)
        component_id = require_int(component_id, 'component_id')
        quantity = require_int(quantity, 'quantity', minimum=1)

        if not self.session.get(Component, component_id):
            raise NotFoundError(f"Component with ID {component_id} not found")

        existing = self.session.query(BomEntry).filter(
            BomEntry.product_sku == sku,
            BomEntry.component_id == component_id
        ).first()
        if existing:
            raise ConflictError(
                "This component is already in the BOM for this product",
                details={'product_sku': sku, 'component_id': component_id, 'bom_entry_id': existing.id}
            )

        entry = BomEntry(
            product_sku=sku,
            component_id=component_id,
            quantity=quantity,
            brand_id=brand_id,
            notes=notes or None
        )
        self.session.add(entry)

        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same pair
            self.session.rollback()
            raise ConflictError(
                "This component is already in the BOM for this product",
                details={'product_sku': sku, 'component_id': component_id}
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to create BOM entry: {str(e)}")

        logger.info(f"Added component {component_id} x{quantity} to BOM of {sku}")
        return entry

    def update_entry(self, entry_id: int, quantity: Optional[int] = None, notes: Optional[str] = None) -> BomEntry:
        """Update quantity and/or notes of a BOM entry.

        Raises:
            ValidationError: Nothing to update or quantity below 1
            NotFoundError: Unknown entry
        """
        if quantity is None and notes is None:
            raise ValidationError("No fields to update")

        entry = self.get_entry(entry_id)
        if quantity is not None:
            entry.quantity = require_int(quantity, 'quantity', minimum=1)
        if notes is not None:
            entry.notes = notes or None

        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to update BOM entry: {str(e)}")

        return entry

    def delete_entry(self, entry_id: int) -> bool:
        entry = self.get_entry(entry_id)
        self.session.delete(entry)

        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to delete BOM entry: {str(e)}")

        logger.info(f"Deleted BOM entry {entry_id}")
        return True

    def get_bom(self, product_sku: str) -> List[BomEntry]:
        return self.session.query(BomEntry).filter(
            BomEntry.product_sku == normalize_sku(product_sku)
        ).order_by(BomEntry.id).all()

    def get_products(self, search: Optional[str] = None) -> List[Dict]:
        """BOM entries grouped by product SKU.

        Returns:
            List of dicts with product_sku, component_count and entries
        """
        query = self.session.query(BomEntry)
        if search:
            query = query.filter(BomEntry.product_sku.ilike(f"%{search.strip()}%"))

        products: Dict[str, Dict] = {}
        for entry in query.order_by(BomEntry.product_sku, BomEntry.id).all():
            product = products.setdefault(entry.product_sku, {
                'product_sku': entry.product_sku,
                'component_count': 0,
                'entries': []
            })
            product['component_count'] += 1
            product['entries'].append(bom_entry_to_dict(entry))

        return list(products.values())

    def where_used(self, component_id: int) -> List[Dict]:
        """Products whose BOM consumes a component."""
        entries = self.session.query(BomEntry).filter(
            BomEntry.component_id == component_id
        ).order_by(BomEntry.product_sku).all()
        return [{'product_sku': e.product_sku, 'quantity': e.quantity} for e in entries]

    def get_bom_index(self, product_skus: Optional[Iterable[str]] = None) -> BomIndex:
        """Bill of materials keyed by product SKU, for explosion.

        Args:
            product_skus: Optional restriction to these product SKUs

        Returns:
            Dict of product_sku -> list of (component_id, quantity)
        """
        query = self.session.query(BomEntry.product_sku, BomEntry.component_id, BomEntry.quantity)
        if product_skus is not None:
            query = query.filter(BomEntry.product_sku.in_([normalize_sku(s) for s in product_skus]))

        index: BomIndex = {}
        for product_sku, component_id, quantity in query.order_by(BomEntry.id).all():
            index.setdefault(product_sku.upper(), []).append((component_id, quantity))
        return index

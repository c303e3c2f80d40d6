# inventory_engine/models.py
from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey, Text,
    Enum, JSON, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()


class ComponentCategory(enum.Enum):
    """Closed set of component categories.

    Values:
        CASES ('cases'): Acrylic display cases
        BASES ('bases'): Wooden and turf bases
        ACCESSORIES ('accessories'): Stands, pins and small parts
        PACKAGING ('packaging'): Boxes and protective packaging
        DISPLAY_ACCESSORIES ('display_accessories'): Backgrounds and inserts
    """
    CASES = 'cases'
    BASES = 'bases'
    ACCESSORIES = 'accessories'
    PACKAGING = 'packaging'
    DISPLAY_ACCESSORIES = 'display_accessories'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @property
    def label(self) -> str:
        """Display label for the category."""
        return _CATEGORY_LABELS[self]

    @classmethod
    def from_string(cls, value: str) -> 'ComponentCategory':
        """Create a ComponentCategory from its string value.

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            valid = ', '.join(c.value for c in cls)
            raise ValueError(f"Invalid component category: {value}. Valid values are: {valid}")


_CATEGORY_LABELS = {
    ComponentCategory.CASES: 'Cases',
    ComponentCategory.BASES: 'Bases',
    ComponentCategory.ACCESSORIES: 'Accessories',
    ComponentCategory.PACKAGING: 'Packaging',
    ComponentCategory.DISPLAY_ACCESSORIES: 'Display Accessories',
}


class ProductStatus(enum.Enum):
    ACTIVE = 'active'
    HISTORIC = 'historic'
    DISCONTINUED = 'discontinued'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'ProductStatus':
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid product status: {value}. Valid values are: active, historic, discontinued")


class AdjustmentType(enum.Enum):
    COUNT = 'count'
    ADD = 'add'
    REMOVE = 'remove'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'AdjustmentType':
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid adjustment type: {value}. Valid values are: count, add, remove")


class POStatus(enum.Enum):
    """Purchase order states.

    DRAFT is not a commitment. SENT, CONFIRMED and PARTIAL are open and
    count towards on_order. RECEIVED is terminal.
    """
    DRAFT = 'draft'
    SENT = 'sent'
    CONFIRMED = 'confirmed'
    PARTIAL = 'partial'
    RECEIVED = 'received'

    def __str__(self):
        return self.value

    @property
    def is_open(self) -> bool:
        return self in OPEN_PO_STATUSES

    @classmethod
    def from_string(cls, value: str) -> 'POStatus':
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid purchase order status: {value}. Valid values are: draft, sent, confirmed, partial, received")


OPEN_PO_STATUSES = (POStatus.SENT, POStatus.CONFIRMED, POStatus.PARTIAL)


class Brand(Base):
    __tablename__ = 'brand'

    id = Column(Integer, primary_key=True)
    code = Column(String(20), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<Brand(code='{self.code}')>"


class Supplier(Base):
    __tablename__ = 'supplier'

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True)
    name = Column(String(100), nullable=False)
    default_lead_time_days = Column(Integer)
    min_order_qty = Column(Integer, default=1)
    min_order_value = Column(Float, default=0.0)
    payment_terms = Column(String(50))
    currency = Column(String(3), default='GBP')
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    components = relationship("Component", back_populates="supplier")
    purchase_orders = relationship("PurchaseOrder", back_populates="supplier")

    def __repr__(self):
        return f"<Supplier(name='{self.name}')>"


class Component(Base):
    """Physical part consumed when a product is assembled."""
    __tablename__ = 'component'

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    brand_id = Column(Integer, ForeignKey('brand.id'))
    category = Column(Enum(ComponentCategory, native_enum=False, length=30))
    material = Column(String(50))
    variant = Column(String(50))
    safety_stock_days = Column(Integer, default=14)
    min_order_qty = Column(Integer, default=1)
    lead_time_days = Column(Integer)  # None falls back to the supplier's lead time
    supplier_id = Column(Integer, ForeignKey('supplier.id'))  # preferred supplier
    unit_cost = Column(Float)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    brand = relationship("Brand")
    supplier = relationship("Supplier", back_populates="components")
    stock_level = relationship("StockLevel", back_populates="component", uselist=False)
    bom_entries = relationship("BomEntry", back_populates="component")

    def __repr__(self):
        return f"<Component(sku='{self.sku}')>"


class ProductSku(Base):
    """Canonical sellable identifier."""
    __tablename__ = 'product_sku'

    id = Column(Integer, primary_key=True)
    sku = Column(String(100), nullable=False, unique=True)
    name = Column(String(255))
    brand_id = Column(Integer, ForeignKey('brand.id'))
    status = Column(Enum(ProductStatus, native_enum=False, length=20), default=ProductStatus.ACTIVE, nullable=False)
    platforms = Column(JSON, default=list)
    notes = Column(Text)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    brand = relationship("Brand")

    @property
    def is_sellable(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def __repr__(self):
        return f"<ProductSku(sku='{self.sku}', status='{self.status}')>"


class BomEntry(Base):
    """Quantity of a component consumed per unit of product sold."""
    __tablename__ = 'bom_entry'
    __table_args__ = (
        UniqueConstraint('product_sku', 'component_id', name='uq_bom_product_component'),
        CheckConstraint('quantity >= 1', name='ck_bom_quantity_positive'),
        Index('ix_bom_product_sku', 'product_sku'),
    )

    id = Column(Integer, primary_key=True)
    product_sku = Column(String(100), nullable=False)
    brand_id = Column(Integer, ForeignKey('brand.id'))
    component_id = Column(Integer, ForeignKey('component.id'), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    notes = Column(Text)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    component = relationship("Component", back_populates="bom_entries")

    def __repr__(self):
        return f"<BomEntry(product_sku='{self.product_sku}', component_id={self.component_id}, quantity={self.quantity})>"


class SkuMapping(Base):
    """Alias from a legacy or platform SKU to its current SKU."""
    __tablename__ = 'sku_mapping'

    id = Column(Integer, primary_key=True)
    old_sku = Column(String(100), nullable=False, unique=True)
    current_sku = Column(String(100), nullable=False)
    brand_id = Column(Integer, ForeignKey('brand.id'))
    platform = Column(String(30))
    notes = Column(Text)
    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<SkuMapping('{self.old_sku}' -> '{self.current_sku}')>"


class StockLevel(Base):
    __tablename__ = 'stock_level'
    __table_args__ = (
        CheckConstraint('on_hand >= 0', name='ck_stock_on_hand'),
        CheckConstraint('reserved >= 0', name='ck_stock_reserved'),
        CheckConstraint('on_order >= 0', name='ck_stock_on_order'),
    )

    id = Column(Integer, primary_key=True)
    component_id = Column(Integer, ForeignKey('component.id'), nullable=False, unique=True)
    on_hand = Column(Integer, nullable=False, default=0)
    reserved = Column(Integer, nullable=False, default=0)
    on_order = Column(Integer, nullable=False, default=0)
    last_count_date = Column(Date)
    last_movement_at = Column(DateTime)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    component = relationship("Component", back_populates="stock_level")

    @property
    def available(self) -> int:
        return max(0, (self.on_hand or 0) - (self.reserved or 0))

    def __repr__(self):
        return f"<StockLevel(component_id={self.component_id}, on_hand={self.on_hand}, on_order={self.on_order})>"


class StockAdjustment(Base):
    """Append-only audit record of a change to on_hand."""
    __tablename__ = 'stock_adjustment'

    id = Column(Integer, primary_key=True)
    component_id = Column(Integer, ForeignKey('component.id'), nullable=False)
    adjustment_type = Column(Enum(AdjustmentType, native_enum=False, length=10), nullable=False)
    quantity = Column(Integer, nullable=False)
    delta = Column(Integer, nullable=False)
    previous_on_hand = Column(Integer, nullable=False)
    new_on_hand = Column(Integer, nullable=False)
    notes = Column(Text)
    reference_type = Column(String(30))
    reference_id = Column(Integer)
    request_id = Column(String(100), unique=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    component = relationship("Component")

    def __repr__(self):
        return (f"<StockAdjustment(component_id={self.component_id}, type='{self.adjustment_type}', "
                f"{self.previous_on_hand}->{self.new_on_hand})>")


class PurchaseOrder(Base):
    __tablename__ = 'purchase_order'

    id = Column(Integer, primary_key=True)
    po_number = Column(String(20), nullable=False, unique=True)
    supplier_id = Column(Integer, ForeignKey('supplier.id'), nullable=False)
    brand_id = Column(Integer, ForeignKey('brand.id'))
    status = Column(Enum(POStatus, native_enum=False, length=20), nullable=False, default=POStatus.DRAFT)
    ordered_date = Column(Date)
    expected_date = Column(Date)
    received_date = Column(Date)
    subtotal = Column(Float, default=0.0)
    shipping_cost = Column(Float, default=0.0)
    total = Column(Float, default=0.0)
    currency = Column(String(3), default='GBP')
    notes = Column(Text)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    supplier = relationship("Supplier", back_populates="purchase_orders")
    lines = relationship(
        "POLine",
        back_populates="purchase_order",
        order_by="POLine.id",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<PurchaseOrder(po_number='{self.po_number}', status='{self.status}')>"


class POLine(Base):
    __tablename__ = 'po_line'
    __table_args__ = (
        CheckConstraint('quantity_ordered >= 1', name='ck_po_line_ordered'),
        CheckConstraint('quantity_received >= 0', name='ck_po_line_received'),
        CheckConstraint('quantity_received <= quantity_ordered', name='ck_po_line_bound'),
    )

    id = Column(Integer, primary_key=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_order.id'), nullable=False)
    component_id = Column(Integer, ForeignKey('component.id'), nullable=False)
    quantity_ordered = Column(Integer, nullable=False)
    quantity_received = Column(Integer, nullable=False, default=0)
    unit_price = Column(Float, nullable=False, default=0.0)
    notes = Column(Text)

    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    component = relationship("Component")

    @property
    def remaining(self) -> int:
        return self.quantity_ordered - (self.quantity_received or 0)

    @property
    def is_complete(self) -> bool:
        return self.remaining <= 0

    @property
    def line_total(self) -> float:
        return self.quantity_ordered * (self.unit_price or 0.0)

    def __repr__(self):
        return f"<POLine(id={self.id}, component_id={self.component_id}, {self.quantity_received}/{self.quantity_ordered})>"


class SalesLine(Base):
    """Order line item supplied by the external order sync."""
    __tablename__ = 'sales_line'
    __table_args__ = (
        Index('ix_sales_line_order_date', 'order_date'),
    )

    id = Column(Integer, primary_key=True)
    raw_sku = Column(String(100), nullable=False)
    product_name = Column(String(255))
    quantity = Column(Integer, nullable=False, default=1)
    order_date = Column(Date, nullable=False)
    platform = Column(String(30))
    brand_id = Column(Integer, ForeignKey('brand.id'))
    order_ref = Column(String(100))
    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<SalesLine(raw_sku='{self.raw_sku}', quantity={self.quantity}, order_date={self.order_date})>"

"""
Shared fixtures for tests that need a database.

Each test runs against a fresh in-memory SQLite schema.
"""
import unittest
from datetime import date

from inventory_engine.db import db
from inventory_engine.models import BomEntry, SalesLine, StockLevel
from inventory_engine.services.catalog_service import CatalogService


class DatabaseTestCase(unittest.TestCase):
    """Base test case with a clean schema and catalog helpers."""

    @classmethod
    def setUpClass(cls):
        db.initialize('sqlite://')

    def setUp(self):
        db.drop_all_tables()
        db.create_all_tables()
        self.session = db.session()
        self.catalog = CatalogService(self.session)

    def tearDown(self):
        db.session.remove()

    def make_supplier(self, name='Acme Timber', lead_time=None, **kwargs):
        return self.catalog.create_supplier(name, default_lead_time_days=lead_time, **kwargs)

    def make_component(self, sku='CASE-MAH', on_hand=0, reserved=0, **kwargs):
        """Create a component and return its ID."""
        kwargs.setdefault('name', f"Component {sku}")
        component = self.catalog.create_component(sku, on_hand=on_hand, **kwargs)
        if reserved:
            component.stock_level.reserved = reserved
            self.session.commit()
        return component.id

    def add_bom(self, product_sku, component_id, quantity=1):
        self.session.add(BomEntry(product_sku=product_sku, component_id=component_id, quantity=quantity))
        self.session.commit()

    def add_sales(self, raw_sku, quantity, order_date, product_name=None, platform='shopify'):
        self.session.add(SalesLine(
            raw_sku=raw_sku,
            quantity=quantity,
            order_date=order_date,
            product_name=product_name,
            platform=platform
        ))
        self.session.commit()

    def stock(self, component_id) -> StockLevel:
        self.session.expire_all()
        return self.session.query(StockLevel).filter(StockLevel.component_id == component_id).one()


AS_OF = date(2024, 3, 31)

"""
Tests for the catalog and bill of materials services.
"""
import pytest

from inventory_engine.exceptions import ConflictError, NotFoundError, ValidationError
from inventory_engine.models import ComponentCategory, ProductStatus
from inventory_engine.services.bom_service import BomService, bom_entry_to_dict
from tests.base import DatabaseTestCase


class TestCatalogService(DatabaseTestCase):

    def test_component_gets_stock_level(self):
        component_id = self.make_component('case-mah', on_hand=12, category='Cases')

        component = self.catalog.get_component(component_id)
        self.assertEqual(component.sku, 'CASE-MAH')
        self.assertEqual(component.category, ComponentCategory.CASES)
        self.assertEqual(self.stock(component_id).on_hand, 12)
        self.assertEqual(self.stock(component_id).on_order, 0)

    def test_component_validation(self):
        with pytest.raises(ValidationError):
            self.make_component('CASE-X', category='furniture')
        with pytest.raises(ValidationError):
            self.make_component('CASE-X', min_order_qty=0)
        with pytest.raises(NotFoundError):
            self.make_component('CASE-X', supplier_id=42)

    def test_duplicate_component_sku(self):
        self.make_component('CASE-MAH')

        with pytest.raises(ConflictError):
            self.make_component('CASE-MAH')

    def test_product_status_views(self):
        self.catalog.create_product_sku('GBCVANTAGE', platforms=['Shopify', 'etsy', 'shopify'])
        self.catalog.create_product_sku('GBCHERITAGE', status='historic')
        self.catalog.create_product_sku('GBCOLD', status='discontinued')

        sellable = self.catalog.get_product_skus(sellable_only=True)
        self.assertEqual([p.sku for p in sellable], ['GBCVANTAGE'])
        self.assertEqual(sellable[0].platforms, ['etsy', 'shopify'])
        self.assertEqual(len(self.catalog.get_product_skus()), 3)
        self.assertEqual(self.catalog.get_status_counts(), {'active': 1, 'historic': 1, 'discontinued': 1})

        product = self.catalog.set_product_status('gbcold', 'active')
        self.assertEqual(product.status, ProductStatus.ACTIVE)

    def test_brands(self):
        brand_id = self.catalog.create_brand(' gb ', 'Golf Ball Cases').id

        self.assertEqual(self.catalog.get_brand_by_code('GB').id, brand_id)
        self.assertIsNone(self.catalog.get_brand_by_code('XX'))
        with pytest.raises(ValidationError):
            self.catalog.create_brand('', 'Nameless')

    def test_catalog_skus_include_bom_products(self):
        component_id = self.make_component('CASE-MAH')
        self.catalog.create_product_sku('GBCVANTAGE')
        self.add_bom('B1-VANT-GT-C1', component_id)

        self.assertEqual(self.catalog.get_catalog_skus(), {'GBCVANTAGE', 'B1-VANT-GT-C1'})


class TestBomService(DatabaseTestCase):
    """Test cases for BomService."""

    def setUp(self):
        super().setUp()
        self.service = BomService(self.session)
        self.case_id = self.make_component('CASE-MAH', category='cases')
        self.base_id = self.make_component('BASE-B1', category='bases')

    def test_create_and_get(self):
        entry = self.service.create_entry('gbcvantage', self.case_id, 1, notes='Main case')
        self.service.create_entry('GBCVANTAGE', self.base_id, 2)

        bom = self.service.get_bom('GBCVANTAGE')
        self.assertEqual([(e.component_id, e.quantity) for e in bom], [(self.case_id, 1), (self.base_id, 2)])
        data = bom_entry_to_dict(entry)
        self.assertEqual(data['product_sku'], 'GBCVANTAGE')
        self.assertEqual(data['component']['category'], 'cases')

    def test_duplicate_pair_conflicts(self):
        self.service.create_entry('GBCVANTAGE', self.case_id, 1)

        with pytest.raises(ConflictError):
            self.service.create_entry('GBCVANTAGE', self.case_id, 3)

    def test_create_validation(self):
        with pytest.raises(ValidationError):
            self.service.create_entry('GBCVANTAGE', self.case_id, 0)
        with pytest.raises(ValidationError):
            self.service.create_entry('', self.case_id, 1)
        with pytest.raises(NotFoundError):
            self.service.create_entry('GBCVANTAGE', 9999, 1)

    def test_update_and_delete(self):
        entry_id = self.service.create_entry('GBCVANTAGE', self.case_id, 1).id

        entry = self.service.update_entry(entry_id, quantity=4)
        self.assertEqual(entry.quantity, 4)

        with pytest.raises(ValidationError):
            self.service.update_entry(entry_id)
        with pytest.raises(ValidationError):
            self.service.update_entry(entry_id, quantity=0)

        self.assertTrue(self.service.delete_entry(entry_id))
        with pytest.raises(NotFoundError):
            self.service.get_entry(entry_id)

    def test_where_used_and_index(self):
        self.service.create_entry('GBCVANTAGE', self.case_id, 1)
        self.service.create_entry('GBCVANTAGE', self.base_id, 1)
        self.service.create_entry('GBCICON', self.case_id, 2)

        self.assertEqual(self.service.where_used(self.case_id), [
            {'product_sku': 'GBCICON', 'quantity': 2},
            {'product_sku': 'GBCVANTAGE', 'quantity': 1},
        ])
        self.assertEqual(self.service.get_bom_index(), {
            'GBCVANTAGE': [(self.case_id, 1), (self.base_id, 1)],
            'GBCICON': [(self.case_id, 2)],
        })
        self.assertEqual(list(self.service.get_bom_index(['gbcicon'])), ['GBCICON'])

        products = self.service.get_products()
        self.assertEqual([p['product_sku'] for p in products], ['GBCICON', 'GBCVANTAGE'])
        self.assertEqual(products[1]['component_count'], 2)

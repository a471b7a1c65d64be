"""
Shared fixtures for the ledger tests.
"""
import unittest
from datetime import datetime, date, time

from ledger_forecast.db import Database
from ledger_forecast.models import ProductType
from ledger_forecast.services.inventory_service import InventoryService
from ledger_forecast.services.product_service import ProductService

OWNER = 'owner-1'
OTHER_OWNER = 'owner-2'

# Friday; tomorrow is a Saturday
NOW = datetime(2024, 3, 15, 12, 0, 0)
TODAY = NOW.date()


def fixed_clock():
    return NOW


class LedgerTestCase(unittest.TestCase):
    """Test case with a fresh in-memory ledger per test."""

    def setUp(self):
        self.database = Database('sqlite://')
        self.database.create_all_tables()
        self.session = self.database.session()
        self.clock = fixed_clock

    def tearDown(self):
        self.session.close()
        self.database.dispose()

    def make_product(self, name='Bread', price=2.5, cost=1.0, stock=0, owner_id=OWNER,
                     product_type=ProductType.SELLABLE, min_threshold=None):
        product = ProductService(self.session, clock=self.clock).create_product(
            owner_id, name, price=price, cost=cost,
            product_type=product_type, min_threshold=min_threshold
        )
        if stock:
            InventoryService(self.session, clock=self.clock).restock(owner_id, product.id, stock)
        return product

    def stock_of(self, product, owner_id=OWNER):
        balance = InventoryService(self.session, clock=self.clock).get_inventory_by_product(
            owner_id, product.id
        )
        self.session.refresh(balance)
        return balance.quantity

    def add_history(self, product, days_and_quantities, owner_id=OWNER):
        """Record one past sale per (date, quantity) pair with admin rights."""
        from ledger_forecast.services.sales_service import SalesService

        service = SalesService(self.session, clock=self.clock)
        for sale_date, quantity in days_and_quantities:
            service.create_sale(
                owner_id, product.id, quantity, product.price,
                sale_date=sale_date, sale_time=time(9, 0), elevated=True
            )

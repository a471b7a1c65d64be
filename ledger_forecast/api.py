# ledger_forecast/api.py
from datetime import date, datetime
from typing import List, Optional, Union, Any

from ledger_forecast.db import Database
from ledger_forecast.models import (
    ForecastRecord, InventoryBalance, Product, Profile, SaleTransaction
)
from ledger_forecast.services.accuracy_service import AccuracyService
from ledger_forecast.services.forecast_service import ForecastService
from ledger_forecast.services.inventory_service import InventoryService
from ledger_forecast.services.product_service import ProductService
from ledger_forecast.services.profile_service import ProfileService
from ledger_forecast.services.reporting_service import ProductionPlanEntry, ReportingService
from ledger_forecast.services.sales_service import SalesService
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)


class LedgerAPI:
    """Function-call surface of the ledger.

    Each method runs in its own transaction. Returned objects are detached
    from the session with their attributes and the relationships the caller
    reads already loaded.
    """

    def __init__(self, database: Database, clock=None):
        """Initialize the API.

        Args:
            database: Ledger store
            clock: Optional callable returning the current datetime
        """
        self.database = database
        self.clock = clock or datetime.now

    def record_sale(
        self,
        owner_id: str,
        product_id: int,
        quantity: Any,
        unit_price: Any,
        notes: Optional[str] = None,
        sale_datetime: Optional[datetime] = None,
        elevated: Optional[bool] = None
    ) -> SaleTransaction:
        """Record a sale; sale_datetime other than today needs admin mode."""
        sale_date = sale_datetime.date() if sale_datetime is not None else None
        sale_time = sale_datetime.time().replace(microsecond=0) if sale_datetime is not None else None

        with self.database.session_scope() as session:
            sale = SalesService(session, clock=self.clock).create_sale(
                owner_id,
                product_id,
                quantity,
                unit_price,
                notes=notes,
                sale_date=sale_date,
                sale_time=sale_time,
                elevated=elevated
            )
            # Load the product before the session closes
            sale.product
            return sale

    def edit_sale(
        self,
        sale_id: int,
        product_id: int,
        quantity: Any,
        unit_price: Any,
        notes: Optional[str] = None,
        elevated: Optional[bool] = None
    ) -> SaleTransaction:
        with self.database.session_scope() as session:
            sale = SalesService(session, clock=self.clock).edit_sale(
                sale_id, product_id, quantity, unit_price, notes=notes, elevated=elevated
            )
            # Load the product before the session closes
            sale.product
            return sale

    def delete_sale(self, sale_id: int, elevated: Optional[bool] = None) -> None:
        with self.database.session_scope() as session:
            SalesService(session, clock=self.clock).delete_sale(sale_id, elevated=elevated)

    def get_sales(
        self,
        owner_id: str,
        start_date: Optional[Union[str, date]] = None,
        end_date: Optional[Union[str, date]] = None
    ) -> List[SaleTransaction]:
        with self.database.session_scope() as session:
            return SalesService(session, clock=self.clock).get_sales(owner_id, start_date, end_date)

    def adjust_inventory(self, owner_id: str, product_id: int, delta: Any) -> InventoryBalance:
        """Apply a signed stock change, clamping the balance at zero."""
        with self.database.session_scope() as session:
            service = InventoryService(session, clock=self.clock)
            service.get_or_create_balance(owner_id, product_id)
            balance = service.adjust(owner_id, product_id, delta)
            # Load the product before the session closes
            balance.product
            return balance

    def get_inventory(self, owner_id: str) -> List[InventoryBalance]:
        with self.database.session_scope() as session:
            return InventoryService(session, clock=self.clock).get_inventory(owner_id)

    def generate_forecasts_for_tomorrow(self, owner_id: str, cancel_event=None) -> List[ForecastRecord]:
        with self.database.session_scope() as session:
            return ForecastService(session, clock=self.clock).generate_forecasts_for_tomorrow(
                owner_id, cancel_event=cancel_event
            )

    def get_forecasts_for_date(self, owner_id: str, forecast_date: Union[str, date]) -> List[ForecastRecord]:
        with self.database.session_scope() as session:
            return ForecastService(session, clock=self.clock).get_forecasts_for_date(owner_id, forecast_date)

    def get_forecast_accuracy(self, owner_id: str, trailing_days: Optional[int] = None) -> float:
        with self.database.session_scope() as session:
            return AccuracyService(session, clock=self.clock).get_forecast_accuracy(owner_id, trailing_days)

    def create_product(self, owner_id: str, name: str, **kwargs) -> Product:
        """Create a product; keyword arguments as ProductService.create_product."""
        with self.database.session_scope() as session:
            return ProductService(session, clock=self.clock).create_product(owner_id, name, **kwargs)

    def get_products(self, owner_id: str, product_type: Any = None) -> List[Product]:
        with self.database.session_scope() as session:
            return ProductService(session, clock=self.clock).get_products(owner_id, product_type)

    def set_admin_mode(self, owner_id: str, enabled: bool) -> Profile:
        with self.database.session_scope() as session:
            return ProfileService(session).set_admin_mode(owner_id, enabled)

    def get_production_plan(
        self,
        owner_id: str,
        forecast_date: Optional[Union[str, date]] = None
    ) -> List[ProductionPlanEntry]:
        with self.database.session_scope() as session:
            return ReportingService(session, clock=self.clock).get_production_plan(owner_id, forecast_date)

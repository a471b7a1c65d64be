# ledger_forecast/services/sales_service.py
from datetime import date, datetime, time
from typing import List, Dict, Optional, Union, Any

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ledger_forecast.models import SaleTransaction, Product
from ledger_forecast.exceptions import (
    InsufficientStockError, NotFoundError, PermissionDeniedError
)
from ledger_forecast.services.inventory_service import InventoryService
from ledger_forecast.services.profile_service import ProfileService
from ledger_forecast.utils.date_utils import convert_to_date, convert_to_time
from ledger_forecast.utils.validation import validate_price, validate_quantity
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)


class SalesService:
    """Service for recording, editing and deleting sales.

    Every sale mutation moves stock through InventoryService.adjust inside a
    savepoint, so a failure leaves both the sale and the balances untouched.
    """

    def __init__(self, session: Session, clock=None):
        """Initialize the sales service.

        Args:
            session: Database session
            clock: Optional callable returning the current datetime
        """
        self.session = session
        self.clock = clock or datetime.now
        self.inventory_service = InventoryService(session, clock=self.clock)
        self.profile_service = ProfileService(session)

    def _today(self) -> date:
        return self.clock().date()

    def _is_elevated(self, owner_id: str, elevated: Optional[bool]) -> bool:
        if elevated is None:
            return self.profile_service.is_elevated(owner_id)
        return bool(elevated)

    def _get_owned_product(self, owner_id: str, product_id: int) -> Product:
        product = self.session.get(Product, product_id)
        if product is None or product.owner_id != owner_id:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def _check_can_modify(self, sale: SaleTransaction, elevated: Optional[bool]) -> None:
        if sale.sale_date == self._today():
            return
        if not self._is_elevated(sale.owner_id, elevated):
            logger.warning(f"Refused change to sale {sale.id} dated {sale.sale_date} without admin mode")
            raise PermissionDeniedError(details={'sale_id': sale.id, 'sale_date': str(sale.sale_date)})

    def get_sale(self, sale_id: int) -> SaleTransaction:
        """Get a sale by ID.

        Raises:
            NotFoundError if the sale does not exist
        """
        sale = self.session.get(SaleTransaction, sale_id)
        if sale is None:
            raise NotFoundError(f"Sale {sale_id} not found")
        return sale

    def get_sales(
        self,
        owner_id: str,
        start_date: Optional[Union[str, date]] = None,
        end_date: Optional[Union[str, date]] = None
    ) -> List[SaleTransaction]:
        """Get sales with their products, newest first.

        Args:
            owner_id: Owner ID
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date

        Returns:
            List of sales
        """
        query = (
            self.session.query(SaleTransaction)
            .options(joinedload(SaleTransaction.product))
            .filter(SaleTransaction.owner_id == owner_id)
        )

        if start_date is not None:
            query = query.filter(SaleTransaction.sale_date >= convert_to_date(start_date))
        if end_date is not None:
            query = query.filter(SaleTransaction.sale_date <= convert_to_date(end_date))

        return query.order_by(
            SaleTransaction.sale_date.desc(),
            SaleTransaction.sale_time.desc(),
            SaleTransaction.id.desc()
        ).all()

    def get_todays_sales(self, owner_id: str) -> List[SaleTransaction]:
        today = self._today()
        return self.get_sales(owner_id, today, today)

    def create_sale(
        self,
        owner_id: str,
        product_id: int,
        quantity: Any,
        unit_price: Any,
        notes: Optional[str] = None,
        sale_date: Optional[Union[str, date]] = None,
        sale_time: Optional[Union[str, time]] = None,
        elevated: Optional[bool] = None
    ) -> SaleTransaction:
        """Record a sale and take its quantity out of stock.

        Args:
            owner_id: Owner ID
            product_id: Product sold
            quantity: Units sold (> 0)
            unit_price: Price per unit (>= 0)
            notes: Optional free text
            sale_date: Optional explicit date (admin mode unless today)
            sale_time: Optional explicit time (admin mode unless dated today)
            elevated: Admin mode override; the owner's profile decides if None

        Returns:
            The recorded sale

        Raises:
            InvalidQuantityError, ValidationError, NotFoundError,
            PermissionDeniedError, InsufficientStockError
        """
        quantity = validate_quantity(quantity)
        unit_price = validate_price(unit_price)
        product = self._get_owned_product(owner_id, product_id)

        now = self.clock()
        resolved_date = convert_to_date(sale_date) if sale_date is not None else now.date()
        resolved_time = (
            convert_to_time(sale_time) if sale_time is not None
            else now.time().replace(microsecond=0)
        )

        if resolved_date != now.date() and not self._is_elevated(owner_id, elevated):
            raise PermissionDeniedError(
                "Recording a sale on another day requires admin mode",
                details={'sale_date': str(resolved_date)}
            )

        with self.session.begin_nested():
            available = self.inventory_service.get_available(owner_id, product.id)
            if quantity > available:
                raise InsufficientStockError(available, quantity)

            sale = SaleTransaction(
                owner_id=owner_id,
                product_id=product.id,
                quantity=quantity,
                unit_price=unit_price,
                total_amount=quantity * unit_price,
                sale_date=resolved_date,
                sale_time=resolved_time,
                notes=notes or '',
                created_at=now,
                updated_at=now
            )
            self.session.add(sale)
            self.session.flush()

            self.inventory_service.adjust(owner_id, product.id, -quantity)

        logger.info(f"Recorded sale {sale.id}: {quantity:g} x {product.name} at {unit_price:g}")
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
        """Change a sale and move the stock difference.

        The old quantity is returned to the old product and the new quantity
        taken from the new product in one savepoint, so for an unchanged
        product the balance moves by exactly old - new.

        Args:
            sale_id: Sale to change
            product_id: Product after the edit
            quantity: Units after the edit (> 0)
            unit_price: Price per unit after the edit (>= 0)
            notes: New notes (unchanged if None)
            elevated: Admin mode override; the owner's profile decides if None

        Returns:
            The updated sale
        """
        sale = self.get_sale(sale_id)
        self._check_can_modify(sale, elevated)

        quantity = validate_quantity(quantity)
        unit_price = validate_price(unit_price)
        owner_id = sale.owner_id
        new_product = self._get_owned_product(owner_id, product_id)

        old_quantity = sale.quantity
        old_product_id = sale.product_id

        with self.session.begin_nested():
            if new_product.id == old_product_id:
                delta = quantity - old_quantity
                if delta > 0:
                    available = self.inventory_service.get_available(owner_id, new_product.id)
                    if available < delta:
                        raise InsufficientStockError(available, delta)
            else:
                available = self.inventory_service.get_available(owner_id, new_product.id)
                if available < quantity:
                    raise InsufficientStockError(available, quantity)

            self.inventory_service.get_or_create_balance(owner_id, old_product_id)
            self.inventory_service.adjust(owner_id, old_product_id, old_quantity)
            self.inventory_service.adjust(owner_id, new_product.id, -quantity)

            sale.product = new_product
            sale.quantity = quantity
            sale.unit_price = unit_price
            sale.total_amount = quantity * unit_price
            if notes is not None:
                sale.notes = notes
            sale.updated_at = self.clock()
            self.session.flush()

        logger.info(f"Edited sale {sale.id}: {old_quantity:g} -> {quantity:g}")
        return sale

    def delete_sale(self, sale_id: int, elevated: Optional[bool] = None) -> None:
        """Delete a sale and return its quantity to stock.

        Raises:
            NotFoundError, PermissionDeniedError
        """
        sale = self.get_sale(sale_id)
        self._check_can_modify(sale, elevated)

        with self.session.begin_nested():
            self.inventory_service.get_or_create_balance(sale.owner_id, sale.product_id)
            self.inventory_service.adjust(sale.owner_id, sale.product_id, sale.quantity)
            self.session.delete(sale)
            self.session.flush()

        logger.info(f"Deleted sale {sale_id}, restored {sale.quantity:g} units of product {sale.product_id}")

    def get_product_sales_for_period(
        self,
        owner_id: str,
        product_id: int,
        start_date: Union[str, date],
        end_date: Union[str, date]
    ) -> List[Dict]:
        """Get per-day sales totals for one product, oldest first.

        The totals come from a single aggregate statement.

        Returns:
            List of dictionaries with sale_date, total_quantity and
            transaction_count
        """
        rows = (
            self.session.query(
                SaleTransaction.sale_date,
                func.sum(SaleTransaction.quantity),
                func.count(SaleTransaction.id)
            )
            .filter(
                SaleTransaction.owner_id == owner_id,
                SaleTransaction.product_id == product_id,
                SaleTransaction.sale_date >= convert_to_date(start_date),
                SaleTransaction.sale_date <= convert_to_date(end_date)
            )
            .group_by(SaleTransaction.sale_date)
            .order_by(SaleTransaction.sale_date.asc())
            .all()
        )

        return [
            {
                'sale_date': sale_date,
                'total_quantity': float(total_quantity or 0.0),
                'transaction_count': transaction_count
            }
            for sale_date, total_quantity, transaction_count in rows
        ]

    def get_daily_sales_for_period(
        self,
        owner_id: str,
        start_date: Union[str, date],
        end_date: Union[str, date]
    ) -> List[Dict]:
        """Get per-day totals across all products, oldest first."""
        rows = (
            self.session.query(
                SaleTransaction.sale_date,
                func.sum(SaleTransaction.quantity),
                func.sum(SaleTransaction.total_amount),
                func.count(SaleTransaction.id)
            )
            .filter(
                SaleTransaction.owner_id == owner_id,
                SaleTransaction.sale_date >= convert_to_date(start_date),
                SaleTransaction.sale_date <= convert_to_date(end_date)
            )
            .group_by(SaleTransaction.sale_date)
            .order_by(SaleTransaction.sale_date.asc())
            .all()
        )

        return [
            {
                'sale_date': sale_date,
                'total_quantity': float(total_quantity or 0.0),
                'total_revenue': float(total_revenue or 0.0),
                'transaction_count': transaction_count
            }
            for sale_date, total_quantity, total_revenue, transaction_count in rows
        ]

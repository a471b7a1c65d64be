# ledger_forecast/services/inventory_service.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, update
from sqlalchemy.orm import Session, joinedload

from ledger_forecast.config import config
from ledger_forecast.models import InventoryBalance, Product
from ledger_forecast.exceptions import NotFoundError
from ledger_forecast.utils.validation import (
    validate_delta, validate_quantity, validate_threshold
)
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)


class InventoryService:
    """Service for stock balances.

    adjust() is the only code path that changes InventoryBalance.quantity.
    """

    def __init__(self, session: Session, clock=None):
        """Initialize the inventory service.

        Args:
            session: Database session
            clock: Optional callable returning the current datetime
        """
        self.session = session
        self.clock = clock or datetime.now

    def get_inventory(self, owner_id: str) -> List[InventoryBalance]:
        """Get stock balances of an owner's active products.

        Args:
            owner_id: Owner ID

        Returns:
            Balances with product loaded, most recently updated first
        """
        return (
            self.session.query(InventoryBalance)
            .join(InventoryBalance.product)
            .options(joinedload(InventoryBalance.product))
            .filter(
                InventoryBalance.owner_id == owner_id,
                Product.is_active.is_(True)
            )
            .order_by(InventoryBalance.last_updated.desc(), InventoryBalance.id.desc())
            .all()
        )

    def get_inventory_by_product(
        self,
        owner_id: str,
        product_id: int,
        for_update: bool = False
    ) -> Optional[InventoryBalance]:
        """Get the balance row for one product.

        Args:
            owner_id: Owner ID
            product_id: Product ID
            for_update: Lock the row for the rest of the transaction

        Returns:
            InventoryBalance or None if stock is not tracked yet
        """
        query = self.session.query(InventoryBalance).filter(
            InventoryBalance.owner_id == owner_id,
            InventoryBalance.product_id == product_id
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_available(self, owner_id: str, product_id: int) -> float:
        """Get units on hand, locking the balance row. Untracked stock is 0."""
        balance = self.get_inventory_by_product(owner_id, product_id, for_update=True)
        return balance.quantity if balance else 0.0

    def create_inventory_entry(
        self,
        owner_id: str,
        product_id: int,
        quantity: float = 0.0,
        min_threshold: Optional[float] = None
    ) -> InventoryBalance:
        """Create the balance row for a product.

        Args:
            owner_id: Owner ID
            product_id: Product ID
            quantity: Opening stock
            min_threshold: Low-stock threshold (configured default if None)

        Returns:
            New InventoryBalance
        """
        if min_threshold is None:
            min_threshold = config.business_rules['default_min_threshold']

        balance = InventoryBalance(
            owner_id=owner_id,
            product_id=product_id,
            quantity=max(0.0, float(quantity)),
            min_threshold=validate_threshold(min_threshold),
            last_updated=self.clock()
        )
        self.session.add(balance)
        self.session.flush()
        return balance

    def get_or_create_balance(self, owner_id: str, product_id: int) -> InventoryBalance:
        """Get the balance row, creating an empty one on first use."""
        balance = self.get_inventory_by_product(owner_id, product_id, for_update=True)
        if balance is not None:
            return balance

        product = self.session.get(Product, product_id)
        if product is None or product.owner_id != owner_id:
            raise NotFoundError(f"Product {product_id} not found")

        logger.info(f"Starting stock tracking for product {product_id} of owner {owner_id}")
        return self.create_inventory_entry(owner_id, product_id)

    def adjust(self, owner_id: str, product_id: int, delta: float) -> InventoryBalance:
        """Apply quantity = max(0, quantity + delta) to a balance.

        Runs as a single UPDATE so the read and the write cannot be split.

        Args:
            owner_id: Owner ID
            product_id: Product ID
            delta: Signed change in units

        Returns:
            Updated InventoryBalance

        Raises:
            NotFoundError if the product has no balance row
        """
        delta = validate_delta(delta)
        new_quantity = InventoryBalance.quantity + delta

        result = self.session.execute(
            update(InventoryBalance)
            .where(
                InventoryBalance.owner_id == owner_id,
                InventoryBalance.product_id == product_id
            )
            .values(
                quantity=case((new_quantity < 0, 0.0), else_=new_quantity),
                last_updated=self.clock()
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            raise NotFoundError(f"No inventory record for product {product_id}")

        balance = self.get_inventory_by_product(owner_id, product_id)
        self.session.refresh(balance)

        logger.debug(f"Adjusted product {product_id} by {delta:+g} to {balance.quantity:g}")
        return balance

    def restock(self, owner_id: str, product_id: int, amount: float) -> InventoryBalance:
        """Add produced or purchased units to stock."""
        amount = validate_quantity(amount)
        self.get_or_create_balance(owner_id, product_id)
        return self.adjust(owner_id, product_id, amount)

    def update_threshold(self, owner_id: str, product_id: int, min_threshold: float) -> InventoryBalance:
        """Change the low-stock threshold of a product."""
        balance = self.get_or_create_balance(owner_id, product_id)
        balance.min_threshold = validate_threshold(min_threshold)
        balance.last_updated = self.clock()
        self.session.flush()
        return balance

    def get_low_stock_items(self, owner_id: str) -> List[InventoryBalance]:
        """Get balances at or below their threshold, most depleted first."""
        items = [balance for balance in self.get_inventory(owner_id) if balance.is_low]
        return sorted(
            items,
            key=lambda b: b.quantity / b.min_threshold if b.min_threshold else 0.0
        )

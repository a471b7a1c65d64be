# ledger_forecast/services/product_service.py
from datetime import datetime
from typing import Dict, List, Optional, Any

from sqlalchemy.orm import Session

from ledger_forecast.config import config
from ledger_forecast.models import Product, ProductType
from ledger_forecast.exceptions import NotFoundError, ValidationError
from ledger_forecast.services.inventory_service import InventoryService
from ledger_forecast.utils.validation import validate_name, validate_price
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = ('name', 'description', 'unit', 'price', 'cost', 'product_type', 'is_active')


def _coerce_product_type(value) -> ProductType:
    if isinstance(value, ProductType):
        return value
    try:
        return ProductType.from_string(value)
    except ValueError as e:
        raise ValidationError(str(e), details={'field': 'product_type'})


class ProductService:
    """Service for the product catalogue."""

    def __init__(self, session: Session, clock=None):
        """Initialize the product service.

        Args:
            session: Database session
            clock: Optional callable returning the current datetime
        """
        self.session = session
        self.clock = clock or datetime.now
        self.inventory_service = InventoryService(session, clock=self.clock)

    def create_product(
        self,
        owner_id: str,
        name: str,
        price: float = 0.0,
        cost: float = 0.0,
        unit: Optional[str] = None,
        description: str = '',
        product_type: Any = ProductType.SELLABLE,
        min_threshold: Optional[float] = None
    ) -> Product:
        """Create a product and its (empty) stock balance.

        Args:
            owner_id: Owner ID
            name: Display name
            price: Selling price
            cost: Unit cost
            unit: Unit of measure (configured default if None)
            description: Free text
            product_type: ProductType or its string value
            min_threshold: Low-stock threshold for the new balance

        Returns:
            Created product
        """
        product = Product(
            owner_id=owner_id,
            name=validate_name(name),
            description=description or '',
            unit=unit or config.business_rules['default_unit'],
            price=validate_price(price, 'price'),
            cost=validate_price(cost, 'cost'),
            product_type=_coerce_product_type(product_type),
            is_active=True
        )
        self.session.add(product)
        self.session.flush()

        self.inventory_service.create_inventory_entry(
            owner_id, product.id, quantity=0.0, min_threshold=min_threshold
        )

        logger.info(f"Created product {product.id} ({product.name}) for owner {owner_id}")
        return product

    def get_product(self, product_id: int, owner_id: Optional[str] = None) -> Product:
        """Get a product by ID.

        Raises:
            NotFoundError if missing or owned by someone else
        """
        product = self.session.get(Product, product_id)
        if product is None or (owner_id is not None and product.owner_id != owner_id):
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def get_products(self, owner_id: str, product_type: Any = None) -> List[Product]:
        """Get active products, newest first, optionally of one type."""
        query = self.session.query(Product).filter(
            Product.owner_id == owner_id,
            Product.is_active.is_(True)
        )
        if product_type is not None:
            query = query.filter(Product.product_type == _coerce_product_type(product_type))
        return query.order_by(Product.created_at.desc(), Product.id.desc()).all()

    def update_product(self, product_id: int, updates: Dict[str, Any]) -> Product:
        """Apply a partial update to a product.

        Args:
            product_id: Product ID
            updates: Mapping of field name to new value

        Returns:
            Updated product
        """
        product = self.get_product(product_id)

        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        if 'name' in updates:
            product.name = validate_name(updates['name'])
        if 'description' in updates:
            product.description = updates['description'] or ''
        if 'unit' in updates:
            product.unit = validate_name(updates['unit'], 'unit')
        if 'price' in updates:
            product.price = validate_price(updates['price'], 'price')
        if 'cost' in updates:
            product.cost = validate_price(updates['cost'], 'cost')
        if 'product_type' in updates:
            product.product_type = _coerce_product_type(updates['product_type'])
        if 'is_active' in updates:
            product.is_active = bool(updates['is_active'])

        product.updated_at = self.clock()
        self.session.flush()
        return product

    def delete_product(self, product_id: int) -> None:
        """Soft delete: the product is hidden but its history is kept."""
        product = self.get_product(product_id)
        product.is_active = False
        product.updated_at = self.clock()
        self.session.flush()
        logger.info(f"Deactivated product {product_id}")

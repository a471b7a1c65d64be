# ledger_forecast/models.py
from sqlalchemy import (
    Column, Integer, String, Float, Date, Time, DateTime, Boolean, ForeignKey,
    Text, Enum, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime
import enum

Base = declarative_base()

class ProductType(enum.Enum):
    """Enum for product types.

    Values:
        SELLABLE ('sellable'): Finished goods that are sold and forecast
        INGREDIENT ('ingredient'): Stock consumed by recipes, never sold
    """
    SELLABLE = 'sellable'
    INGREDIENT = 'ingredient'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'ProductType':
        """Create a ProductType from a string value.

        Args:
            value: String value ('sellable', 'ingredient')

        Returns:
            ProductType enum value

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Invalid product type: {value}. Valid values are: sellable, ingredient")

class ProductionPriority(enum.Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    def __str__(self):
        return self.value

class Profile(Base):
    """Owner profile. admin_mode grants edits of past-day sales."""
    __tablename__ = 'profiles'

    owner_id = Column(String(64), primary_key=True)
    business_name = Column(String(100), nullable=False, default='')
    admin_mode = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

class Product(Base):
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, default='')
    unit = Column(String(20), nullable=False, default='pcs')
    price = Column(Float, nullable=False, default=0.0)  # selling price
    cost = Column(Float, nullable=False, default=0.0)  # unit cost
    product_type = Column(Enum(ProductType), nullable=False, default=ProductType.SELLABLE)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    inventory = relationship("InventoryBalance", back_populates="product", uselist=False)

    def __repr__(self):
        return f"<Product id={self.id} name={self.name!r} type={self.product_type}>"

class InventoryBalance(Base):
    """Stock on hand for one product of one owner.

    quantity is only changed through InventoryService.adjust.
    """
    __tablename__ = 'inventory'

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    quantity = Column(Float, nullable=False, default=0.0)
    min_threshold = Column(Float, nullable=False, default=10.0)
    last_updated = Column(DateTime, nullable=False, default=datetime.now)

    product = relationship("Product", back_populates="inventory")

    __table_args__ = (
        UniqueConstraint('owner_id', 'product_id', name='uq_inventory_owner_product'),
        CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
    )

    @property
    def is_low(self) -> bool:
        """Whether the balance is at or below its restock threshold."""
        return self.quantity <= self.min_threshold

    def __repr__(self):
        return f"<InventoryBalance product_id={self.product_id} quantity={self.quantity}>"

class SaleTransaction(Base):
    __tablename__ = 'sales'

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    quantity = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)  # quantity * unit_price
    sale_date = Column(Date, nullable=False, index=True)
    sale_time = Column(Time, nullable=False)
    notes = Column(Text, default='')
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    product = relationship("Product")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_sales_quantity_positive'),
        CheckConstraint('unit_price >= 0', name='ck_sales_unit_price_non_negative'),
        Index('ix_sales_owner_product_date', 'owner_id', 'product_id', 'sale_date'),
    )

    def __repr__(self):
        return f"<SaleTransaction id={self.id} product_id={self.product_id} quantity={self.quantity}>"

class ForecastRecord(Base):
    __tablename__ = 'forecasts'

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    forecast_date = Column(Date, nullable=False, index=True)
    predicted_quantity = Column(Integer, nullable=False)
    confidence_score = Column(Float, nullable=False, default=0.1)
    actual_quantity = Column(Float)  # back-filled once the day's sales are known
    model_version = Column(String(20), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint('owner_id', 'product_id', 'forecast_date', name='uq_forecast_owner_product_date'),
        CheckConstraint('predicted_quantity >= 0', name='ck_forecast_predicted_non_negative'),
    )

    def __repr__(self):
        return (f"<ForecastRecord product_id={self.product_id} date={self.forecast_date} "
                f"predicted={self.predicted_quantity}>")

class RecipeIngredient(Base):
    """Quantity of an ingredient product used per batch of a product."""
    __tablename__ = 'product_ingredients'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    ingredient_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    quantity = Column(Float, nullable=False)
    batch_size = Column(Float, nullable=False, default=1.0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    product = relationship("Product", foreign_keys=[product_id])
    ingredient = relationship("Product", foreign_keys=[ingredient_id])

    __table_args__ = (
        UniqueConstraint('product_id', 'ingredient_id', name='uq_recipe_product_ingredient'),
    )

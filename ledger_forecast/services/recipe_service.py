# ledger_forecast/services/recipe_service.py
from datetime import datetime
from typing import List, Dict, Optional, Any

from sqlalchemy.orm import Session, joinedload

from ledger_forecast.models import RecipeIngredient, Product, ProductType
from ledger_forecast.exceptions import (
    InsufficientStockError, NotFoundError, ValidationError
)
from ledger_forecast.services.inventory_service import InventoryService
from ledger_forecast.utils.validation import validate_quantity
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)


class RecipeService:
    """Recipes: ingredient quantities per batch of a product."""

    def __init__(self, session: Session, clock=None):
        self.session = session
        self.clock = clock or datetime.now
        self.inventory_service = InventoryService(session, clock=self.clock)

    def add_ingredient(
        self,
        product_id: int,
        ingredient_id: int,
        quantity: Any,
        batch_size: Any = 1
    ) -> RecipeIngredient:
        """Add an ingredient to a product's recipe.

        Args:
            product_id: Product being made
            ingredient_id: Product consumed (must be an ingredient)
            quantity: Ingredient units per batch
            batch_size: Product units a batch yields

        Returns:
            The recipe line
        """
        product = self.session.get(Product, product_id)
        ingredient = self.session.get(Product, ingredient_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if ingredient is None or ingredient.owner_id != product.owner_id:
            raise NotFoundError(f"Ingredient {ingredient_id} not found")
        if ingredient.product_type != ProductType.INGREDIENT:
            raise ValidationError(f"{ingredient.name} is not an ingredient")
        if product_id == ingredient_id:
            raise ValidationError("A product cannot be an ingredient of itself")

        line = RecipeIngredient(
            product_id=product_id,
            ingredient_id=ingredient_id,
            quantity=validate_quantity(quantity),
            batch_size=validate_quantity(batch_size),
            created_at=self.clock()
        )
        self.session.add(line)
        self.session.flush()
        return line

    def get_recipe_ingredients(self, product_id: int) -> List[RecipeIngredient]:
        """Get recipe lines with ingredient loaded, by ingredient name."""
        return (
            self.session.query(RecipeIngredient)
            .join(RecipeIngredient.ingredient)
            .options(joinedload(RecipeIngredient.ingredient))
            .filter(RecipeIngredient.product_id == product_id)
            .order_by(Product.name.asc())
            .all()
        )

    def _get_line(self, recipe_ingredient_id: int) -> RecipeIngredient:
        line = self.session.get(RecipeIngredient, recipe_ingredient_id)
        if line is None:
            raise NotFoundError(f"Recipe line {recipe_ingredient_id} not found")
        return line

    def remove_ingredient(self, recipe_ingredient_id: int) -> None:
        self.session.delete(self._get_line(recipe_ingredient_id))
        self.session.flush()

    def update_ingredient_quantity(self, recipe_ingredient_id: int, quantity: Any) -> RecipeIngredient:
        line = self._get_line(recipe_ingredient_id)
        line.quantity = validate_quantity(quantity)
        self.session.flush()
        return line

    def update_batch_size(self, product_id: int, batch_size: Any) -> int:
        """Set the batch size on every line of a recipe. Returns lines changed."""
        batch_size = validate_quantity(batch_size)
        lines = self.get_recipe_ingredients(product_id)
        for line in lines:
            line.batch_size = batch_size
        self.session.flush()
        return len(lines)

    def has_recipe(self, product_id: int) -> bool:
        return self.session.query(RecipeIngredient.id).filter(
            RecipeIngredient.product_id == product_id
        ).first() is not None

    def delete_recipe(self, product_id: int) -> int:
        deleted = self.session.query(RecipeIngredient).filter(
            RecipeIngredient.product_id == product_id
        ).delete(synchronize_session='fetch')
        self.session.flush()
        return deleted

    def calculate_recipe_cost(self, product_id: int) -> Optional[Dict]:
        """Calculate batch and per-unit cost from ingredient costs.

        Returns:
            Dictionary with total_cost, per_unit_cost, batch_size and an
            ingredient breakdown, or None if the product has no recipe
        """
        lines = self.get_recipe_ingredients(product_id)
        if not lines:
            return None

        batch_size = lines[0].batch_size or 1.0
        breakdown = []
        total_cost = 0.0

        for line in lines:
            unit_cost = line.ingredient.cost or 0.0
            line_cost = unit_cost * line.quantity
            total_cost += line_cost
            breakdown.append({
                'name': line.ingredient.name,
                'quantity': line.quantity,
                'unit': line.ingredient.unit,
                'cost': unit_cost,
                'total_cost': line_cost
            })

        return {
            'total_cost': total_cost,
            'per_unit_cost': total_cost / batch_size,
            'batch_size': batch_size,
            'ingredients': breakdown
        }

    def check_ingredient_availability(self, product_id: int, batches: Any = 1) -> Dict:
        """Check there is enough of every ingredient for a number of batches.

        Returns:
            Dictionary with can_make and a list of missing ingredient messages
        """
        batches = validate_quantity(batches)
        missing = []

        for line in self.get_recipe_ingredients(product_id):
            balance = self.inventory_service.get_inventory_by_product(
                line.ingredient.owner_id, line.ingredient_id
            )
            available = balance.quantity if balance else 0.0
            required = line.quantity * batches
            if available < required:
                missing.append(
                    f"{line.ingredient.name} (need {required:g} {line.ingredient.unit}, have {available:g})"
                )

        return {
            'can_make': not missing,
            'missing_ingredients': missing
        }

    def deduct_ingredients_for_batch(self, product_id: int, batches: Any = 1) -> List[Dict]:
        """Take the ingredients for a number of batches out of stock.

        All deductions happen in one savepoint; if any ingredient is short
        nothing is deducted.

        Returns:
            List of dictionaries with ingredient_id, deducted and remaining
        """
        batches = validate_quantity(batches)
        lines = self.get_recipe_ingredients(product_id)
        if not lines:
            raise NotFoundError(f"Product {product_id} has no recipe")

        deductions = []
        with self.session.begin_nested():
            for line in lines:
                owner_id = line.ingredient.owner_id
                required = line.quantity * batches
                available = self.inventory_service.get_available(owner_id, line.ingredient_id)
                if available < required:
                    raise InsufficientStockError(
                        available,
                        required,
                        details={'ingredient': line.ingredient.name}
                    )
                balance = self.inventory_service.adjust(owner_id, line.ingredient_id, -required)
                deductions.append({
                    'ingredient_id': line.ingredient_id,
                    'deducted': required,
                    'remaining': balance.quantity
                })

        logger.info(f"Deducted ingredients for {batches:g} batch(es) of product {product_id}")
        return deductions

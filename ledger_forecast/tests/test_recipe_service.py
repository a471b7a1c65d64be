"""
Tests for recipes and ingredient deduction.
"""
from ledger_forecast.exceptions import InsufficientStockError, NotFoundError, ValidationError
from ledger_forecast.models import ProductType
from ledger_forecast.services.recipe_service import RecipeService
from ledger_forecast.tests.base import LedgerTestCase


class TestRecipeService(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.service = RecipeService(self.session, clock=self.clock)
        self.bread = self.make_product('Bread', price=3.0)
        self.flour = self.make_product('Flour', cost=0.5, stock=10, product_type=ProductType.INGREDIENT)
        self.yeast = self.make_product('Yeast', cost=2.0, stock=1, product_type=ProductType.INGREDIENT)

    def _make_recipe(self):
        self.service.add_ingredient(self.bread.id, self.flour.id, 4, batch_size=10)
        self.service.add_ingredient(self.bread.id, self.yeast.id, 0.5, batch_size=10)

    def test_recipe_cost(self):
        self._make_recipe()

        cost = self.service.calculate_recipe_cost(self.bread.id)

        self.assertEqual(cost['total_cost'], 3.0)
        self.assertAlmostEqual(cost['per_unit_cost'], 0.3)
        self.assertEqual([i['name'] for i in cost['ingredients']], ['Flour', 'Yeast'])

    def test_cost_without_recipe_is_none(self):
        self.assertIsNone(self.service.calculate_recipe_cost(self.bread.id))
        self.assertFalse(self.service.has_recipe(self.bread.id))

    def test_only_ingredients_can_be_added(self):
        cake = self.make_product('Cake')
        with self.assertRaises(ValidationError):
            self.service.add_ingredient(self.bread.id, cake.id, 1)

    def test_update_and_remove_lines(self):
        self._make_recipe()
        lines = self.service.get_recipe_ingredients(self.bread.id)

        self.service.update_ingredient_quantity(lines[0].id, 5)
        self.assertEqual(self.service.update_batch_size(self.bread.id, 20), 2)
        self.service.remove_ingredient(lines[1].id)

        lines = self.service.get_recipe_ingredients(self.bread.id)
        self.assertEqual(len(lines), 1)
        self.assertEqual(lines[0].quantity, 5.0)
        self.assertEqual(lines[0].batch_size, 20.0)

    def test_delete_recipe(self):
        self._make_recipe()
        self.assertEqual(self.service.delete_recipe(self.bread.id), 2)
        self.assertFalse(self.service.has_recipe(self.bread.id))

    def test_availability_check(self):
        self._make_recipe()

        self.assertTrue(self.service.check_ingredient_availability(self.bread.id, 2)['can_make'])

        result = self.service.check_ingredient_availability(self.bread.id, 3)
        self.assertFalse(result['can_make'])
        self.assertEqual(len(result['missing_ingredients']), 2)

    def test_deduct_ingredients(self):
        self._make_recipe()

        deductions = self.service.deduct_ingredients_for_batch(self.bread.id, 2)

        self.assertEqual(len(deductions), 2)
        self.assertEqual(self.stock_of(self.flour), 2.0)
        self.assertEqual(self.stock_of(self.yeast), 0.0)

    def test_deduct_is_all_or_nothing(self):
        """Flour is deducted first, then yeast runs short; both are restored."""
        self._make_recipe()

        with self.assertRaises(InsufficientStockError):
            self.service.deduct_ingredients_for_batch(self.bread.id, 2.5)

        self.assertEqual(self.stock_of(self.flour), 10.0)
        self.assertEqual(self.stock_of(self.yeast), 1.0)

    def test_deduct_without_recipe(self):
        with self.assertRaises(NotFoundError):
            self.service.deduct_ingredients_for_batch(self.bread.id)

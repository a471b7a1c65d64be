"""
Tests for sales reports and the production plan.
"""
from datetime import timedelta

from ledger_forecast.models import ProductionPriority
from ledger_forecast.services.forecast_service import ForecastService
from ledger_forecast.services.reporting_service import ReportingService
from ledger_forecast.services.sales_service import SalesService
from ledger_forecast.tests.base import LedgerTestCase, OWNER, TODAY

TOMORROW = TODAY + timedelta(days=1)


class TestReportingService(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.service = ReportingService(self.session, clock=self.clock)
        self.sales = SalesService(self.session, clock=self.clock)

    def test_production_plan_scenario(self):
        """Stock 5, threshold 10, predicted 50 -> low, high priority."""
        bread = self.make_product('Bread', stock=5, min_threshold=10)
        ForecastService(self.session, clock=self.clock).create_forecast(OWNER, bread.id, TOMORROW, 50, 0.8)

        plan = self.service.get_production_plan(OWNER, TOMORROW)

        self.assertEqual(len(plan), 1)
        entry = plan[0]
        self.assertEqual(entry.product.name, 'Bread')
        self.assertEqual(entry.current_stock, 5.0)
        self.assertTrue(entry.is_low)
        self.assertEqual(entry.priority, ProductionPriority.HIGH)
        self.assertEqual(entry.suggested_quantity, 45.0)

    def test_production_plan_orders_by_priority(self):
        forecasts = ForecastService(self.session, clock=self.clock)
        plenty = self.make_product('Plenty', stock=100)
        short = self.make_product('Short', stock=1)
        forecasts.create_forecast(OWNER, plenty.id, TOMORROW, 80, 0.8)
        forecasts.create_forecast(OWNER, short.id, TOMORROW, 10, 0.8)

        plan = self.service.get_production_plan(OWNER)

        self.assertEqual([e.product.name for e in plan], ['Short', 'Plenty'])
        self.assertEqual(plan[1].priority, ProductionPriority.LOW)
        self.assertEqual(plan[1].suggested_quantity, 0.0)

    def test_sales_stats(self):
        bread = self.make_product('Bread', stock=100)
        cake = self.make_product('Cake', stock=100)
        self.sales.create_sale(OWNER, bread.id, 10, 2.0)
        self.sales.create_sale(OWNER, cake.id, 2, 15.0)

        stats = self.service.get_sales_stats(OWNER, TODAY, TODAY)

        self.assertEqual(stats['total_revenue'], 50.0)
        self.assertEqual(stats['total_items'], 12.0)
        self.assertEqual(stats['total_transactions'], 2)
        self.assertEqual([p['name'] for p in stats['top_products']], ['Cake', 'Bread'])

    def test_sales_stats_empty_range(self):
        stats = self.service.get_sales_stats(OWNER, TODAY, TODAY)
        self.assertEqual(stats['total_revenue'], 0.0)
        self.assertEqual(stats['top_products'], [])

    def test_top_selling_products_by_quantity(self):
        bread = self.make_product('Bread', stock=100)
        cake = self.make_product('Cake', stock=100)
        self.sales.create_sale(OWNER, bread.id, 10, 2.0)
        self.sales.create_sale(OWNER, cake.id, 2, 15.0)

        top = self.service.get_top_selling_products(OWNER)

        self.assertEqual([p['name'] for p in top], ['Bread', 'Cake'])
        self.assertEqual(top[0]['transaction_count'], 1)

    def test_growth_rate(self):
        bread = self.make_product('Bread', stock=1000)
        history = [(TODAY - timedelta(days=day), 10 if day >= 4 else 20) for day in range(8)]
        self.add_history(bread, history)

        growth = self.service.get_sales_growth_rate(OWNER, bread.id, days=7)

        self.assertEqual(growth['growth_rate'], 100.0)
        self.assertEqual(growth['first_period_avg'], 10)
        self.assertEqual(growth['second_period_avg'], 20)

    def test_growth_rate_needs_enough_days(self):
        bread = self.make_product('Bread', stock=100)
        self.add_history(bread, [(TODAY, 5)])
        self.assertIsNone(self.service.get_sales_growth_rate(OWNER, bread.id, days=7))

    def test_low_stock_alerts(self):
        self.make_product('Bread', stock=3)
        self.make_product('Cake', stock=30)

        alerts = self.service.get_low_stock_alerts(OWNER)

        self.assertEqual([a['name'] for a in alerts], ['Bread'])
        self.assertEqual(alerts[0]['quantity'], 3.0)

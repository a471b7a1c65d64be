# ledger_forecast/services/reporting_service.py
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Dict, Optional, Union

import numpy as np
from sqlalchemy import func
from sqlalchemy.orm import Session

from ledger_forecast.config import config
from ledger_forecast.models import Product, SaleTransaction, ProductionPriority
from ledger_forecast.core.demand_forecast import classify_priority
from ledger_forecast.services.forecast_service import ForecastService
from ledger_forecast.services.inventory_service import InventoryService
from ledger_forecast.services.sales_service import SalesService
from ledger_forecast.utils.date_utils import convert_to_date, get_trailing_window
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)

_PRIORITY_ORDER = {
    ProductionPriority.HIGH: 0,
    ProductionPriority.MEDIUM: 1,
    ProductionPriority.LOW: 2,
}


@dataclass
class ProductionPlanEntry:
    """What to make of one product for a forecast day."""
    product: Product
    predicted_quantity: int
    current_stock: float
    is_low: bool
    priority: ProductionPriority
    suggested_quantity: float


class ReportingService:
    """Service for sales reports and production planning."""

    def __init__(self, session: Session, clock=None):
        """Initialize the reporting service.

        Args:
            session: Database session
            clock: Optional callable returning the current datetime
        """
        self.session = session
        self.clock = clock or datetime.now
        self.sales_service = SalesService(session, clock=self.clock)
        self.inventory_service = InventoryService(session, clock=self.clock)
        self.forecast_service = ForecastService(session, clock=self.clock)

    def _today(self) -> date:
        return self.clock().date()

    def get_sales_stats(
        self,
        owner_id: str,
        start_date: Union[str, date],
        end_date: Union[str, date]
    ) -> Dict:
        """Summarize sales for a date range.

        Args:
            owner_id: Owner ID
            start_date: Inclusive start date
            end_date: Inclusive end date

        Returns:
            Dictionary with total_revenue, total_items, total_transactions and
            the top 5 products by revenue
        """
        start_date = convert_to_date(start_date)
        end_date = convert_to_date(end_date)

        total_revenue, total_items, total_transactions = (
            self.session.query(
                func.coalesce(func.sum(SaleTransaction.total_amount), 0.0),
                func.coalesce(func.sum(SaleTransaction.quantity), 0.0),
                func.count(SaleTransaction.id)
            )
            .filter(
                SaleTransaction.owner_id == owner_id,
                SaleTransaction.sale_date >= start_date,
                SaleTransaction.sale_date <= end_date
            )
            .one()
        )

        revenue = func.sum(SaleTransaction.total_amount)
        top_rows = (
            self.session.query(
                Product.id,
                Product.name,
                func.sum(SaleTransaction.quantity),
                revenue
            )
            .join(SaleTransaction, SaleTransaction.product_id == Product.id)
            .filter(
                SaleTransaction.owner_id == owner_id,
                SaleTransaction.sale_date >= start_date,
                SaleTransaction.sale_date <= end_date
            )
            .group_by(Product.id, Product.name)
            .order_by(revenue.desc(), Product.id.asc())
            .limit(5)
            .all()
        )

        return {
            'start_date': start_date,
            'end_date': end_date,
            'total_revenue': float(total_revenue),
            'total_items': float(total_items),
            'total_transactions': total_transactions,
            'top_products': [
                {
                    'product_id': product_id,
                    'name': name,
                    'quantity': float(quantity),
                    'revenue': float(product_revenue)
                }
                for product_id, name, quantity, product_revenue in top_rows
            ]
        }

    def get_top_selling_products(self, owner_id: str, days: int = 7, limit: int = 10) -> List[Dict]:
        """Get the best sellers by units over the last `days` days."""
        start_date, end_date = get_trailing_window(self._today(), days)
        total_quantity = func.sum(SaleTransaction.quantity)

        rows = (
            self.session.query(
                Product.id,
                Product.name,
                Product.unit,
                total_quantity,
                func.sum(SaleTransaction.total_amount),
                func.count(SaleTransaction.id),
                func.avg(SaleTransaction.quantity)
            )
            .join(SaleTransaction, SaleTransaction.product_id == Product.id)
            .filter(
                SaleTransaction.owner_id == owner_id,
                SaleTransaction.sale_date >= start_date,
                SaleTransaction.sale_date <= end_date
            )
            .group_by(Product.id, Product.name, Product.unit)
            .order_by(total_quantity.desc(), Product.id.asc())
            .limit(limit)
            .all()
        )

        return [
            {
                'product_id': product_id,
                'name': name,
                'unit': unit,
                'total_quantity': float(quantity),
                'total_revenue': float(revenue),
                'transaction_count': count,
                'avg_quantity': float(avg_quantity)
            }
            for product_id, name, unit, quantity, revenue, count, avg_quantity in rows
        ]

    def get_sales_growth_rate(self, owner_id: str, product_id: int, days: int = 7) -> Optional[Dict]:
        """Compare average daily sales of the older and newer half of a window.

        The window covers the last 2 * days days. The sale-days are split at
        their midpoint.

        Returns:
            Dictionary with growth_rate (percent, one decimal),
            first_period_avg and second_period_avg, or None when there are
            fewer than `days` sale-days
        """
        start_date, end_date = get_trailing_window(self._today(), days * 2)
        rows = self.sales_service.get_product_sales_for_period(owner_id, product_id, start_date, end_date)

        if len(rows) < days:
            return None

        quantities = np.array([row['total_quantity'] for row in rows], dtype=float)
        midpoint = len(quantities) // 2
        first_avg = float(np.mean(quantities[:midpoint]))
        second_avg = float(np.mean(quantities[midpoint:]))

        growth_rate = (second_avg - first_avg) / first_avg * 100 if first_avg > 0 else 0.0

        return {
            'growth_rate': round(growth_rate, 1),
            'first_period_avg': round(first_avg),
            'second_period_avg': round(second_avg)
        }

    def get_low_stock_alerts(self, owner_id: str) -> List[Dict]:
        """Get products at or below their restock threshold."""
        return [
            {
                'product_id': balance.product_id,
                'name': balance.product.name,
                'unit': balance.product.unit,
                'quantity': balance.quantity,
                'min_threshold': balance.min_threshold
            }
            for balance in self.inventory_service.get_low_stock_items(owner_id)
        ]

    def get_production_plan(
        self,
        owner_id: str,
        forecast_date: Optional[Union[str, date]] = None
    ) -> List[ProductionPlanEntry]:
        """Build a production plan from the forecasts for a date.

        Args:
            owner_id: Owner ID
            forecast_date: Forecast date (tomorrow if None)

        Returns:
            Plan entries, most urgent first
        """
        if forecast_date is None:
            forecast_date = self._today() + timedelta(days=1)

        high_priority_ratio = config.forecast_config['high_priority_ratio']
        plan = []

        for forecast in self.forecast_service.get_forecasts_for_date(owner_id, forecast_date):
            balance = self.inventory_service.get_inventory_by_product(owner_id, forecast.product_id)
            current_stock = balance.quantity if balance else 0.0
            predicted = forecast.predicted_quantity

            plan.append(ProductionPlanEntry(
                product=forecast.product,
                predicted_quantity=predicted,
                current_stock=current_stock,
                is_low=balance.is_low if balance else True,
                priority=classify_priority(current_stock, predicted, high_priority_ratio),
                suggested_quantity=max(0.0, predicted - current_stock)
            ))

        plan.sort(key=lambda entry: (_PRIORITY_ORDER[entry.priority], -entry.predicted_quantity))
        logger.debug(f"Production plan for owner {owner_id}: {len(plan)} products")
        return plan

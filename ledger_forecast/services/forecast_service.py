# ledger_forecast/services/forecast_service.py
from datetime import date, datetime
from typing import List, Dict, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ledger_forecast.config import config
from ledger_forecast.models import ForecastRecord, Product
from ledger_forecast.core.demand_forecast import predict_demand
from ledger_forecast.exceptions import ForecastError, InsufficientHistoryError, NotFoundError
from ledger_forecast.services.sales_service import SalesService
from ledger_forecast.utils.date_utils import (
    convert_to_date, format_date, get_tomorrow, get_trailing_window
)
from ledger_forecast.logging_setup import get_logger

# Set up logging
logger = get_logger(__name__)

class ForecastService:
    """Service for next-day demand forecasts."""

    def __init__(self, session: Session, clock=None, settings: Optional[Dict] = None):
        """Initialize the forecast service.

        Args:
            session: Database session
            clock: Optional callable returning the current datetime
            settings: Optional overrides of the FORECAST config section
        """
        self.session = session
        self.clock = clock or datetime.now
        self.sales_service = SalesService(session, clock=self.clock)
        self._settings = dict(config.forecast_config)
        if settings:
            self._settings.update(settings)

    @property
    def settings(self) -> Dict:
        """Get forecast parameters."""
        return self._settings

    def _today(self) -> date:
        return self.clock().date()

    def get_forecasts_for_date(self, owner_id: str, forecast_date: Union[str, date]) -> List[ForecastRecord]:
        """Get an owner's forecasts for a date, highest demand first.

        Args:
            owner_id: Owner ID
            forecast_date: Forecast date

        Returns:
            Forecast records with product loaded
        """
        return (
            self.session.query(ForecastRecord)
            .options(joinedload(ForecastRecord.product))
            .filter(
                ForecastRecord.owner_id == owner_id,
                ForecastRecord.forecast_date == convert_to_date(forecast_date)
            )
            .order_by(ForecastRecord.predicted_quantity.desc(), ForecastRecord.id.asc())
            .all()
        )

    def count_forecasts_for_date(self, owner_id: str, forecast_date: date) -> int:
        """Count the forecast rows an owner already has for a date."""
        return (
            self.session.query(func.count(ForecastRecord.id))
            .filter(
                ForecastRecord.owner_id == owner_id,
                ForecastRecord.forecast_date == forecast_date
            )
            .scalar()
        )

    def get_product_history(self, owner_id: str, product_id: int, as_of: date) -> List[tuple]:
        """Get (sale_date, total_quantity) pairs for the trailing history window."""
        start_date, end_date = get_trailing_window(as_of, self.settings['history_days'])
        rows = self.sales_service.get_product_sales_for_period(owner_id, product_id, start_date, end_date)
        return [(row['sale_date'], row['total_quantity']) for row in rows]

    def predict_product_demand(self, owner_id: str, product_id: int, target_date: Optional[date] = None) -> Dict:
        """Predict demand for one product.

        Args:
            owner_id: Owner ID
            product_id: Product ID
            target_date: Date to forecast (tomorrow if None)

        Returns:
            Prediction dictionary from predict_demand

        Raises:
            InsufficientHistoryError if there are too few sale-days
        """
        today = self._today()
        target_date = target_date or get_tomorrow(today)
        history = self.get_product_history(owner_id, product_id, today)

        settings = self.settings
        return predict_demand(
            history,
            target_date,
            min_history_days=settings['min_history_days'],
            moving_average_window=settings['moving_average_window'],
            trend_weight=settings['trend_weight'],
            weekday_weight=settings['weekday_weight'],
            cv_threshold=settings['cv_threshold'],
            min_confidence=settings['min_confidence'],
            max_confidence=settings['max_confidence']
        )

    def create_forecast(
        self,
        owner_id: str,
        product_id: int,
        forecast_date: date,
        predicted_quantity: int,
        confidence_score: float
    ) -> Optional[ForecastRecord]:
        """Insert a forecast row unless one exists for (owner, product, date).

        The unique constraint decides; a lost race is a no-op.

        Returns:
            The new record, or None if the row already existed
        """
        record = ForecastRecord(
            owner_id=owner_id,
            product_id=product_id,
            forecast_date=forecast_date,
            predicted_quantity=int(predicted_quantity),
            confidence_score=float(confidence_score),
            model_version=self.settings['model_version'],
            created_at=self.clock()
        )

        try:
            with self.session.begin_nested():
                self.session.add(record)
                self.session.flush()
        except IntegrityError:
            logger.info(f"Forecast for product {product_id} on {forecast_date} already exists")
            return None

        return record

    def generate_forecasts_for_tomorrow(self, owner_id: str, cancel_event=None) -> List[ForecastRecord]:
        """Generate tomorrow's forecast for every active product.

        Idempotent per date: if the owner already has rows for tomorrow they
        are returned without recomputation. Each product is forecast on its
        own; a failure is logged and the loop moves on.

        Args:
            owner_id: Owner ID
            cancel_event: Optional threading.Event; when set, the remaining
                          products are skipped

        Returns:
            Tomorrow's forecast records
        """
        today = self._today()
        tomorrow = get_tomorrow(today)

        if self.count_forecasts_for_date(owner_id, tomorrow) > 0:
            logger.info(f"Forecasts for {format_date(tomorrow)} already exist for owner {owner_id}")
            return self.get_forecasts_for_date(owner_id, tomorrow)

        products = (
            self.session.query(Product)
            .filter(
                Product.owner_id == owner_id,
                Product.is_active.is_(True)
            )
            .order_by(Product.id)
            .all()
        )

        results = {
            'total_products': len(products),
            'created': 0,
            'skipped': 0,
            'errors': 0
        }

        for product in products:
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Forecast run for owner {owner_id} cancelled after {results['created']} products")
                break

            try:
                prediction = self.predict_product_demand(owner_id, product.id, tomorrow)
                record = self.create_forecast(
                    owner_id,
                    product.id,
                    tomorrow,
                    prediction['predicted_quantity'],
                    prediction['confidence_score']
                )
                if record is not None:
                    results['created'] += 1
            except InsufficientHistoryError as e:
                logger.info(f"Skipping {product.name}: {e.message}")
                results['skipped'] += 1
            except Exception as e:
                logger.error(f"Error forecasting product {product.name}: {str(e)}")
                results['errors'] += 1

        logger.info(
            f"Forecast run for {format_date(tomorrow)}: {results['created']} created, "
            f"{results['skipped']} skipped, {results['errors']} errors"
        )

        return self.get_forecasts_for_date(owner_id, tomorrow)

    def update_forecast_actual(
        self,
        owner_id: str,
        product_id: int,
        forecast_date: Union[str, date],
        actual_quantity: float
    ) -> ForecastRecord:
        """Record the realized demand for a forecast.

        Raises:
            NotFoundError if there is no forecast for that product and date
        """
        if actual_quantity is None or actual_quantity < 0:
            raise ForecastError(f"Actual quantity must be zero or more, got {actual_quantity!r}")

        record = (
            self.session.query(ForecastRecord)
            .filter(
                ForecastRecord.owner_id == owner_id,
                ForecastRecord.product_id == product_id,
                ForecastRecord.forecast_date == convert_to_date(forecast_date)
            )
            .first()
        )
        if record is None:
            raise NotFoundError(f"No forecast for product {product_id} on {forecast_date}")

        record.actual_quantity = float(actual_quantity)
        self.session.flush()
        return record

    def backfill_actuals(self, owner_id: str, forecast_date: Union[str, date]) -> int:
        """Fill actual_quantity from the ledger for every forecast on a date.

        Products with no sales that day get an actual of 0.

        Returns:
            Number of forecasts updated
        """
        forecast_date = convert_to_date(forecast_date)
        if forecast_date >= self._today():
            raise ForecastError(f"Sales for {format_date(forecast_date)} are not complete yet")

        updated = 0
        for record in self.get_forecasts_for_date(owner_id, forecast_date):
            rows = self.sales_service.get_product_sales_for_period(
                owner_id, record.product_id, forecast_date, forecast_date
            )
            record.actual_quantity = rows[0]['total_quantity'] if rows else 0.0
            updated += 1

        self.session.flush()
        logger.info(f"Back-filled {updated} actuals for {format_date(forecast_date)}")
        return updated

# ledger_forecast/services/accuracy_service.py
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ledger_forecast.config import config
from ledger_forecast.models import ForecastRecord
from ledger_forecast.core.demand_forecast import calculate_accuracy
from ledger_forecast.utils.date_utils import format_date, get_accuracy_window
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)


class AccuracyService:
    """Retrospective scoring of forecasts against realized sales."""

    def __init__(self, session: Session, clock=None):
        self.session = session
        self.clock = clock or datetime.now

    def get_forecast_accuracy(self, owner_id: str, trailing_days: Optional[int] = None) -> float:
        """Score recent forecasts as max(0, 1 - MAPE) * 100.

        Forecasts dated from today - trailing_days - 1 through yesterday with
        a back-filled actual are eligible; zero actuals are left out of the
        error average.

        Args:
            owner_id: Owner ID
            trailing_days: Days to look back (configured default if None)

        Returns:
            Accuracy percentage to one decimal, 0 with no eligible rows
        """
        if trailing_days is None:
            trailing_days = config.business_rules['accuracy_trailing_days']

        start_date, end_date = get_accuracy_window(self.clock().date(), trailing_days)

        rows = (
            self.session.query(ForecastRecord.predicted_quantity, ForecastRecord.actual_quantity)
            .filter(
                ForecastRecord.owner_id == owner_id,
                ForecastRecord.forecast_date >= start_date,
                ForecastRecord.forecast_date <= end_date,
                ForecastRecord.actual_quantity.isnot(None)
            )
            .all()
        )

        accuracy = calculate_accuracy([(predicted, actual) for predicted, actual in rows])
        logger.debug(
            f"Accuracy for owner {owner_id} {format_date(start_date)}..{format_date(end_date)}: "
            f"{accuracy}% over {len(rows)} forecasts"
        )
        return accuracy

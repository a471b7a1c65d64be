# ledger_forecast/core/demand_forecast.py
import math
from datetime import date
from typing import List, Dict, Tuple, Optional, Sequence
import numpy as np

from ..exceptions import InsufficientHistoryError
from ..models import ProductionPriority

def round_half_up(value: float, digits: int = 0) -> float:
    """Round to digits decimals with exact ties going up."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor

def calculate_moving_average(quantities: Sequence[float], window: int = 7) -> float:
    """Calculate the mean of the most recent observations.

    Args:
        quantities: Daily quantities ordered oldest first
        window: Number of trailing days to average

    Returns:
        Moving average (0.0 for empty history)
    """
    if not quantities:
        return 0.0

    recent = quantities[-min(window, len(quantities)):]
    return float(np.mean(recent))

def calculate_trend(quantities: Sequence[float]) -> float:
    """Calculate trend as second-half mean minus first-half mean.

    The history is split at len // 2, so with an odd length the extra
    day falls into the second half.

    Args:
        quantities: Daily quantities ordered oldest first

    Returns:
        Trend value (0.0 when fewer than two observations)
    """
    if len(quantities) < 2:
        return 0.0

    mid_point = len(quantities) // 2
    first_half = quantities[:mid_point]
    second_half = quantities[mid_point:]

    return float(np.mean(second_half) - np.mean(first_half))

def calculate_weekday_average(
    history: Sequence[Tuple[date, float]],
    weekday: int
) -> Optional[float]:
    """Average the quantities of history days falling on a weekday.

    Args:
        history: (sale_date, quantity) pairs
        weekday: Target weekday (Monday=0 ... Sunday=6)

    Returns:
        Mean quantity for that weekday, or None if no day matches
    """
    matches = [quantity for sale_date, quantity in history if sale_date.weekday() == weekday]
    if not matches:
        return None
    return float(np.mean(matches))

def calculate_variance(quantities: Sequence[float]) -> float:
    """Population variance of the quantities (0.0 for empty input)."""
    if not quantities:
        return 0.0
    return float(np.var(quantities))

def calculate_confidence(
    quantities: Sequence[float],
    cv_threshold: float = 0.5,
    min_confidence: float = 0.1,
    max_confidence: float = 1.0
) -> float:
    """Derive a confidence score from the coefficient of variation.

    A coefficient of variation equal to cv_threshold or worse maps to the
    floor; a perfectly flat history maps to the ceiling. Zero mean demand
    is treated as CV = 1.

    Args:
        quantities: Daily quantities
        cv_threshold: CV at which confidence reaches zero before clamping
        min_confidence: Lower clamp
        max_confidence: Upper clamp

    Returns:
        Confidence score rounded to 2 decimals
    """
    mean = float(np.mean(quantities)) if len(quantities) else 0.0
    if mean > 0:
        coefficient_of_variation = math.sqrt(calculate_variance(quantities)) / mean
    else:
        coefficient_of_variation = 1.0

    confidence = 1.0 - (coefficient_of_variation / cv_threshold)
    confidence = max(min_confidence, min(max_confidence, confidence))

    return round_half_up(confidence, 2)

def predict_demand(
    history: Sequence[Tuple[date, float]],
    target_date: date,
    min_history_days: int = 7,
    moving_average_window: int = 7,
    trend_weight: float = 0.3,
    weekday_weight: float = 0.3,
    cv_threshold: float = 0.5,
    min_confidence: float = 0.1,
    max_confidence: float = 1.0
) -> Dict:
    """Predict demand for target_date from aggregated daily sales.

    Args:
        history: (sale_date, total_quantity) pairs, one per sale-day,
                 ordered by date ascending
        target_date: Date being forecast
        min_history_days: Minimum distinct sale-days required
        moving_average_window: Trailing days in the moving average
        trend_weight: Weight applied to the trend term
        weekday_weight: Weight of the same-weekday average in the blend
        cv_threshold: See calculate_confidence
        min_confidence: See calculate_confidence
        max_confidence: See calculate_confidence

    Returns:
        Dictionary with predicted_quantity, confidence_score and the
        intermediate values used to reach them

    Raises:
        InsufficientHistoryError: fewer than min_history_days sale-days
    """
    distinct_days = len({sale_date for sale_date, _ in history})
    if distinct_days < min_history_days:
        raise InsufficientHistoryError(distinct_days, min_history_days)

    quantities = [float(quantity) for _, quantity in history]

    moving_average = calculate_moving_average(quantities, moving_average_window)
    trend = calculate_trend(quantities)
    base = moving_average + trend_weight * trend

    weekday_average = calculate_weekday_average(history, target_date.weekday())
    if weekday_average is not None:
        prediction = (1.0 - weekday_weight) * base + weekday_weight * weekday_average
    else:
        prediction = base

    predicted_quantity = int(round_half_up(max(0.0, prediction)))

    return {
        'predicted_quantity': predicted_quantity,
        'confidence_score': calculate_confidence(
            quantities, cv_threshold, min_confidence, max_confidence
        ),
        'moving_average': moving_average,
        'trend': trend,
        'base': base,
        'weekday_average': weekday_average,
        'history_days': distinct_days
    }

def classify_priority(
    current_stock: float,
    predicted_quantity: float,
    high_priority_ratio: float = 0.3
) -> ProductionPriority:
    """Classify how urgently a product needs producing.

    Args:
        current_stock: Units on hand
        predicted_quantity: Forecast demand
        high_priority_ratio: Stock below this share of demand is high priority

    Returns:
        ProductionPriority
    """
    if current_stock < high_priority_ratio * predicted_quantity:
        return ProductionPriority.HIGH
    if current_stock >= predicted_quantity:
        return ProductionPriority.LOW
    return ProductionPriority.MEDIUM

def calculate_mape(pairs: Sequence[Tuple[float, float]]) -> Optional[float]:
    """Mean Absolute Percentage Error over (predicted, actual) pairs.

    Pairs with a zero actual are skipped.

    Returns:
        MAPE as a fraction, or None if no pair has a positive actual
    """
    errors = [
        abs(predicted - actual) / actual
        for predicted, actual in pairs
        if actual is not None and actual > 0
    ]
    if not errors:
        return None
    return float(np.mean(errors))

def calculate_accuracy(pairs: Sequence[Tuple[float, float]]) -> float:
    """Forecast accuracy percentage, max(0, 1 - MAPE) * 100 to 1 decimal."""
    mape = calculate_mape(pairs)
    if mape is None:
        return 0.0
    return round_half_up(max(0.0, 1.0 - mape) * 100.0, 1)

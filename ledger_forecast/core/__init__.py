from .demand_forecast import (
    calculate_moving_average, calculate_trend, calculate_weekday_average,
    calculate_variance, calculate_confidence, predict_demand,
    classify_priority, calculate_mape, calculate_accuracy
)

__all__ = [
    'calculate_moving_average',
    'calculate_trend',
    'calculate_weekday_average',
    'calculate_variance',
    'calculate_confidence',
    'predict_demand',
    'classify_priority',
    'calculate_mape',
    'calculate_accuracy'
]

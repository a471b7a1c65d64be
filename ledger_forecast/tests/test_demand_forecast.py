"""
Unit tests for the next-day demand forecast math.
"""
import unittest
from datetime import date, timedelta

from ledger_forecast.core.demand_forecast import (
    calculate_moving_average,
    calculate_trend,
    calculate_weekday_average,
    calculate_variance,
    calculate_confidence,
    predict_demand,
    classify_priority,
    calculate_mape,
    calculate_accuracy,
    round_half_up
)
from ledger_forecast.exceptions import InsufficientHistoryError
from ledger_forecast.models import ProductionPriority

WORKED_QUANTITIES = [40, 42, 38, 45, 50, 48, 52, 55]

# No Saturdays, so a Saturday target has no weekday match
WORKED_DATES = [
    date(2024, 3, 7), date(2024, 3, 8), date(2024, 3, 10), date(2024, 3, 11),
    date(2024, 3, 12), date(2024, 3, 13), date(2024, 3, 14), date(2024, 3, 15)
]
SATURDAY = date(2024, 3, 16)


class TestForecastComponents(unittest.TestCase):
    """Test cases for the individual forecast terms."""

    def test_moving_average_uses_trailing_window(self):
        """Only the last seven days count."""
        self.assertAlmostEqual(calculate_moving_average(WORKED_QUANTITIES), 330 / 7, places=6)

    def test_moving_average_short_history(self):
        self.assertEqual(calculate_moving_average([4, 6]), 5.0)
        self.assertEqual(calculate_moving_average([]), 0.0)

    def test_trend_splits_at_midpoint(self):
        """Second-half mean minus first-half mean."""
        self.assertAlmostEqual(calculate_trend(WORKED_QUANTITIES), 10.0)

    def test_trend_odd_length_puts_extra_day_in_second_half(self):
        # first [1], second [2, 3]
        self.assertAlmostEqual(calculate_trend([1, 2, 3]), 1.5)

    def test_trend_single_value(self):
        self.assertEqual(calculate_trend([5]), 0.0)

    def test_weekday_average(self):
        history = [(date(2024, 3, 4), 10), (date(2024, 3, 5), 99), (date(2024, 3, 11), 20)]
        self.assertEqual(calculate_weekday_average(history, 0), 15.0)
        self.assertIsNone(calculate_weekday_average(history, 6))

    def test_population_variance(self):
        self.assertAlmostEqual(calculate_variance(WORKED_QUANTITIES), 31.6875)

    def test_confidence_worked_example(self):
        self.assertEqual(calculate_confidence(WORKED_QUANTITIES), 0.76)

    def test_confidence_flat_history_is_max(self):
        self.assertEqual(calculate_confidence([10] * 7), 1.0)

    def test_confidence_zero_mean_is_floor(self):
        self.assertEqual(calculate_confidence([0] * 7), 0.1)

    def test_confidence_noisy_history_is_floor(self):
        self.assertEqual(calculate_confidence([1, 100, 1, 100, 1, 100, 1]), 0.1)

    def test_confidence_tie_rounds_up(self):
        # CV 0.1875 gives exactly 0.625
        self.assertEqual(calculate_confidence([13, 19] * 4), 0.63)

    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3.0)
        self.assertEqual(round_half_up(0.125, 2), 0.13)
        self.assertEqual(round_half_up(0.7566, 2), 0.76)


class TestPredictDemand(unittest.TestCase):
    """Test cases for predict_demand."""

    def test_worked_example(self):
        """Moving average 47.14, trend 10, base 50.14, prediction 50."""
        history = list(zip(WORKED_DATES, WORKED_QUANTITIES))
        result = predict_demand(history, SATURDAY)

        self.assertAlmostEqual(result['moving_average'], 47.142857, places=5)
        self.assertAlmostEqual(result['trend'], 10.0)
        self.assertAlmostEqual(result['base'], 50.142857, places=5)
        self.assertIsNone(result['weekday_average'])
        self.assertEqual(result['predicted_quantity'], 50)
        self.assertEqual(result['confidence_score'], 0.76)
        self.assertEqual(result['history_days'], 8)

    def test_weekday_blend(self):
        """A matching weekday pulls the prediction towards its average."""
        start = date(2024, 3, 1)
        history = [(start + timedelta(days=i), 10.0) for i in range(14)]
        # 2024-03-02 and 2024-03-09 are Saturdays
        history[1] = (history[1][0], 40.0)
        history[8] = (history[8][0], 40.0)

        result = predict_demand(history, SATURDAY)

        self.assertEqual(result['weekday_average'], 40.0)
        self.assertAlmostEqual(result['base'], 100 / 7, places=6)
        # 0.7 * 14.29 + 0.3 * 40
        self.assertEqual(result['predicted_quantity'], 22)

    def test_rounds_half_up(self):
        """2.5 rounds to 3, not to the even 2."""
        history = [(WORKED_DATES[i], q) for i, q in enumerate([3, 2, 3, 2, 3, 2, 3, 2])]
        result = predict_demand(history, SATURDAY, moving_average_window=8, trend_weight=0.0)
        self.assertAlmostEqual(result['base'], 2.5)
        self.assertEqual(result['predicted_quantity'], 3)

    def test_negative_prediction_clamped_to_zero(self):
        history = list(zip(WORKED_DATES, [100, 100, 100, 100, 0, 0, 0, 0]))
        result = predict_demand(history, SATURDAY, trend_weight=5.0)
        self.assertEqual(result['predicted_quantity'], 0)

    def test_insufficient_history(self):
        history = list(zip(WORKED_DATES[:6], WORKED_QUANTITIES[:6]))

        with self.assertRaises(InsufficientHistoryError) as ctx:
            predict_demand(history, SATURDAY)

        self.assertEqual(ctx.exception.distinct_days, 6)
        self.assertEqual(ctx.exception.required, 7)
        self.assertEqual(ctx.exception.code, 'INSUFFICIENT_HISTORY')

    def test_confidence_always_in_bounds(self):
        for quantities in ([1, 1, 1, 1, 1, 1, 1], [0, 50, 0, 50, 0, 50, 0], [5, 6, 7, 8, 9, 10, 11]):
            history = list(zip(WORKED_DATES, quantities))
            score = predict_demand(history, SATURDAY)['confidence_score']
            self.assertGreaterEqual(score, 0.1)
            self.assertLessEqual(score, 1.0)


class TestPriorityAndAccuracy(unittest.TestCase):
    """Test cases for priority classification and accuracy scoring."""

    def test_priority_high(self):
        self.assertEqual(classify_priority(5, 50), ProductionPriority.HIGH)

    def test_priority_medium(self):
        self.assertEqual(classify_priority(20, 50), ProductionPriority.MEDIUM)

    def test_priority_low(self):
        self.assertEqual(classify_priority(50, 50), ProductionPriority.LOW)

    def test_mape_skips_zero_actuals(self):
        self.assertAlmostEqual(calculate_mape([(90, 100), (5, 0)]), 0.1)

    def test_mape_none_without_positive_actuals(self):
        self.assertIsNone(calculate_mape([(5, 0)]))
        self.assertIsNone(calculate_mape([]))

    def test_accuracy(self):
        self.assertEqual(calculate_accuracy([(90, 100), (110, 100)]), 90.0)

    def test_accuracy_tie_rounds_up(self):
        # MAPE 0.1875 gives exactly 81.25
        self.assertEqual(calculate_accuracy([(13, 16)]), 81.3)

    def test_accuracy_floors_at_zero(self):
        self.assertEqual(calculate_accuracy([(500, 100)]), 0.0)

    def test_accuracy_without_rows_is_zero(self):
        self.assertEqual(calculate_accuracy([]), 0.0)

"""
Tests for input validation, date helpers and the error types.
"""
import unittest
from datetime import date, datetime, time

from ledger_forecast.exceptions import (
    InsufficientStockError, InvalidQuantityError, LedgerError,
    PermissionDeniedError, ValidationError
)
from ledger_forecast.utils.date_utils import (
    convert_to_date, convert_to_time, get_accuracy_window, get_trailing_window
)
from ledger_forecast.utils.validation import (
    validate_delta, validate_name, validate_price, validate_quantity
)


class TestValidation(unittest.TestCase):

    def test_quantity_accepts_numbers_and_numeric_strings(self):
        self.assertEqual(validate_quantity(3), 3.0)
        self.assertEqual(validate_quantity(' 2.5 '), 2.5)

    def test_quantity_rejects_bad_values(self):
        for bad in (0, -1, 'x', None, True, float('inf'), [1]):
            with self.assertRaises(InvalidQuantityError):
                validate_quantity(bad)

    def test_invalid_quantity_is_a_validation_error(self):
        with self.assertRaises(ValidationError):
            validate_quantity(0)

    def test_price(self):
        self.assertEqual(validate_price(0), 0.0)
        with self.assertRaises(ValidationError) as ctx:
            validate_price(-0.01, 'cost')
        self.assertEqual(ctx.exception.details, {'field': 'cost'})

    def test_delta_allows_negative(self):
        self.assertEqual(validate_delta(-4), -4.0)

    def test_name(self):
        self.assertEqual(validate_name('  Rye  '), 'Rye')
        with self.assertRaises(ValidationError):
            validate_name('   ')


class TestDateUtils(unittest.TestCase):

    def test_convert_to_date(self):
        self.assertEqual(convert_to_date('2024-03-15'), date(2024, 3, 15))
        self.assertEqual(convert_to_date(datetime(2024, 3, 15, 8, 0)), date(2024, 3, 15))
        with self.assertRaises(ValueError):
            convert_to_date(20240315)

    def test_convert_to_time(self):
        self.assertEqual(convert_to_time('07:30'), time(7, 30))
        self.assertEqual(convert_to_time('07:30:15'), time(7, 30, 15))

    def test_windows(self):
        today = date(2024, 3, 15)
        self.assertEqual(get_trailing_window(today, 30), (date(2024, 2, 14), today))
        self.assertEqual(get_accuracy_window(today, 7), (date(2024, 3, 7), date(2024, 3, 14)))


class TestExceptions(unittest.TestCase):

    def test_insufficient_stock_details(self):
        error = InsufficientStockError(10.0, 15.0)

        self.assertEqual(error.code, 'INSUFFICIENT_STOCK')
        self.assertIn('10', error.message)
        self.assertEqual(error.to_dict()['details'], {'available': 10.0, 'requested': 15.0})
        self.assertEqual(str(error), f"[INSUFFICIENT_STOCK] {error.message}")

    def test_defaults(self):
        error = PermissionDeniedError()
        self.assertIsInstance(error, LedgerError)
        self.assertEqual(error.code, 'PERMISSION_DENIED')
        self.assertNotIn('details', error.to_dict())

"""
Tests for configuration parsing and database start-up errors.
"""
import configparser
import unittest
from unittest.mock import MagicMock, patch

from ledger_forecast.config import config
from ledger_forecast.db import Database
from ledger_forecast.exceptions import ConfigError, DatabaseError, LedgerError
from ledger_forecast.services.forecast_service import ForecastService


def _parser(sections):
    parser = configparser.ConfigParser(interpolation=None)
    parser.read_dict(sections)
    return parser


class TestConfig(unittest.TestCase):

    def test_missing_options_fall_back_to_defaults(self):
        with patch.object(config, '_config', _parser({'FORECAST': {'history_days': '14'}})):
            settings = config.forecast_config
            rules = config.business_rules

        self.assertEqual(settings['history_days'], 14)
        self.assertEqual(settings['trend_weight'], 0.3)
        self.assertEqual(settings['model_version'], 'v1.0.0')
        self.assertEqual(rules['accuracy_trailing_days'], 7)

    def test_unparseable_forecast_value(self):
        with patch.object(config, '_config', _parser({'FORECAST': {'trend_weight': 'heavy'}})):
            with self.assertRaises(ConfigError) as ctx:
                config.forecast_config

        self.assertIsInstance(ctx.exception, LedgerError)
        self.assertIn('trend_weight', ctx.exception.message)
        self.assertEqual(ctx.exception.details['value'], 'heavy')

    def test_integer_option_rejects_fraction(self):
        with patch.object(config, '_config', _parser({'BUSINESS_RULES': {'accuracy_trailing_days': '7.5'}})):
            with self.assertRaises(ConfigError):
                config.business_rules

    def test_forecast_service_surfaces_bad_setting(self):
        with patch.object(config, '_config', _parser({'FORECAST': {'min_history_days': 'seven'}})):
            with self.assertRaises(ConfigError):
                ForecastService(MagicMock())

    def test_logging_options_stay_lenient(self):
        with patch.object(config, '_config', _parser({'LOGGING': {'max_size_mb': 'big'}})):
            self.assertEqual(config.log_config['max_size_mb'], 10)


class TestDatabaseStartup(unittest.TestCase):

    def test_unparseable_url(self):
        with self.assertRaises(DatabaseError) as ctx:
            Database('not a database url')

        self.assertIn('Database initialization failed', ctx.exception.message)
        self.assertEqual(ctx.exception.details, {'url': 'not a database url'})

    def test_in_memory_url(self):
        database = Database('sqlite://')
        try:
            database.create_all_tables()
        finally:
            database.dispose()

"""
Tests for the command-line entry point.
"""
import io
import unittest
from datetime import date, datetime
from unittest.mock import patch, MagicMock

from ledger_forecast import main as cli


class TestMain(unittest.TestCase):

    def _run(self, argv):
        with patch('sys.stdout', new_callable=io.StringIO) as stdout:
            code = cli.main(argv)
        return code, stdout.getvalue()

    def test_setup_db_then_inventory(self):
        code, output = self._run(['--db-url', 'sqlite://', '--setup-db', 'inventory', '--owner', 'o1'])

        self.assertEqual(code, 0)
        self.assertIn('Database schema ready', output)
        self.assertIn('Total Products: 0', output)

    def test_no_command_prints_help(self):
        code, output = self._run(['--db-url', 'sqlite://'])
        self.assertEqual(code, 1)
        self.assertIn('usage', output)

    @patch('ledger_forecast.main.LedgerAPI')
    def test_accuracy_command(self, mock_api_class):
        mock_api = MagicMock()
        mock_api.get_forecast_accuracy.return_value = 87.5
        mock_api_class.return_value = mock_api

        code, output = self._run(['--db-url', 'sqlite://', 'accuracy', '--owner', 'o1', '--days', '7'])

        self.assertEqual(code, 0)
        mock_api.get_forecast_accuracy.assert_called_once_with('o1', 7)
        self.assertIn('87.5%', output)

    @patch('ledger_forecast.main.LedgerAPI')
    def test_forecast_command_without_history(self, mock_api_class):
        mock_api_class.return_value.generate_forecasts_for_tomorrow.return_value = []

        code, output = self._run(['--db-url', 'sqlite://', 'forecast', '--owner', 'o1'])

        self.assertEqual(code, 1)
        self.assertIn('No products', output)

    @patch('ledger_forecast.main.Database')
    def test_setup_db_alone_disposes_database(self, mock_database_class):
        code, output = self._run(['--db-url', 'sqlite://', '--setup-db'])

        self.assertEqual(code, 0)
        database = mock_database_class.return_value
        database.create_all_tables.assert_called_once_with()
        database.dispose.assert_called_once_with()

    @patch('ledger_forecast.main.Database')
    def test_help_disposes_database(self, mock_database_class):
        self._run(['--db-url', 'sqlite://'])
        mock_database_class.return_value.dispose.assert_called_once_with()

    def test_bad_db_url_reports_error(self):
        with patch('sys.stderr', new_callable=io.StringIO) as stderr:
            code, _ = self._run(['--db-url', 'not a database url', 'inventory', '--owner', 'o1'])

        self.assertEqual(code, 1)
        self.assertIn('Database initialization failed', stderr.getvalue())

    @patch('ledger_forecast.main.LedgerAPI')
    def test_plan_defaults_to_day_after_api_clock(self, mock_api_class):
        mock_api = MagicMock()
        mock_api.clock.return_value = datetime(2024, 3, 15, 23, 30)
        mock_api.get_production_plan.return_value = []
        mock_api_class.return_value = mock_api

        code, output = self._run(['--db-url', 'sqlite://', 'plan', '--owner', 'o1'])

        self.assertEqual(code, 1)
        mock_api.get_production_plan.assert_called_once_with('o1', date(2024, 3, 16))
        self.assertIn('2024-03-16', output)

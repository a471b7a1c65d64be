import argparse
import sys
from datetime import timedelta

from tabulate import tabulate

from ledger_forecast.api import LedgerAPI
from ledger_forecast.config import config
from ledger_forecast.db import Database
from ledger_forecast.exceptions import LedgerError
from ledger_forecast.logging_setup import logger, get_logger
from ledger_forecast.utils.date_utils import convert_to_date, format_date


def setup_database(database, drop_existing=False):
    """Create the ledger tables, optionally dropping them first."""
    log = get_logger('setup')
    if drop_existing:
        log.warning("Dropping existing tables")
        database.drop_all_tables()
    database.create_all_tables()
    print("Database schema ready")
    return True


def show_forecasts(api, args):
    """Generate (if needed) and print tomorrow's forecasts."""
    log = get_logger('forecast')
    log.info(f"Forecasting tomorrow for owner {args.owner}")

    forecasts = api.generate_forecasts_for_tomorrow(args.owner)
    if not forecasts:
        print("No products have enough sales history to forecast yet")
        return False

    table_data = [
        [f.product.name, f.predicted_quantity, f.product.unit, f"{f.confidence_score:.0%}"]
        for f in forecasts
    ]
    print(f"\nForecast for {format_date(forecasts[0].forecast_date)}:")
    print(tabulate(table_data, headers=['Product', 'Predicted', 'Unit', 'Confidence']))
    print(f"\nTotal Products: {len(forecasts)}")
    return True


def show_accuracy(api, args):
    accuracy = api.get_forecast_accuracy(args.owner, args.days)
    print(f"Forecast accuracy over the last {args.days or config.business_rules['accuracy_trailing_days']} days: {accuracy:.1f}%")
    return True


def show_inventory(api, args):
    balances = api.get_inventory(args.owner)
    if args.low:
        balances = [balance for balance in balances if balance.is_low]

    table_data = [
        [b.product.name, f"{b.quantity:g}", b.product.unit, f"{b.min_threshold:g}", 'LOW' if b.is_low else '']
        for b in balances
    ]
    print(tabulate(table_data, headers=['Product', 'Quantity', 'Unit', 'Threshold', 'Status']))
    print(f"\nTotal Products: {len(balances)}")
    return True


def show_production_plan(api, args):
    forecast_date = convert_to_date(args.date) if args.date else api.clock().date() + timedelta(days=1)
    plan = api.get_production_plan(args.owner, forecast_date)
    if not plan:
        print(f"No forecasts for {format_date(forecast_date)}")
        return False

    table_data = [
        [
            entry.product.name,
            entry.predicted_quantity,
            f"{entry.current_stock:g}",
            f"{entry.suggested_quantity:g}",
            str(entry.priority).upper()
        ]
        for entry in plan
    ]
    print(f"\nProduction plan for {format_date(forecast_date)}:")
    print(tabulate(table_data, headers=['Product', 'Predicted', 'In Stock', 'To Make', 'Priority']))
    return True


def run_nightly(database, args):
    from ledger_forecast.batch.nightly_job import run_nightly_job

    owners = [args.owner] if args.owner else None
    results = run_nightly_job(database, owners)

    table_data = []
    for owner_id, owner_results in results['owners'].items():
        backfill = owner_results.get('backfill_actuals', {})
        generated = owner_results.get('generate_forecasts', {})
        table_data.append([
            owner_id,
            backfill.get('updated', '-'),
            generated.get('forecasts', '-'),
            owner_results.get('error', '')
        ])
    print(tabulate(table_data, headers=['Owner', 'Actuals Filled', 'Forecasts', 'Error']))
    print(f"\nDuration: {results['duration']}")
    return results['success']


def main(argv=None):
    """Main application entry point."""
    parser = argparse.ArgumentParser(description='Sales ledger and demand forecaster')

    parser.add_argument('--setup-db', action='store_true',
                        help='Set up the database schema')
    parser.add_argument('--drop-db', action='store_true',
                        help='Drop existing tables before setup')
    parser.add_argument('--db-url', type=str,
                        help='Database URL (defaults to the configured one)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    forecast_parser = subparsers.add_parser('forecast', help="Generate and show tomorrow's forecasts")
    forecast_parser.add_argument('--owner', required=True, help='Owner ID')

    accuracy_parser = subparsers.add_parser('accuracy', help='Show recent forecast accuracy')
    accuracy_parser.add_argument('--owner', required=True, help='Owner ID')
    accuracy_parser.add_argument('--days', type=int, help='Trailing days to score')

    inventory_parser = subparsers.add_parser('inventory', help='Show stock balances')
    inventory_parser.add_argument('--owner', required=True, help='Owner ID')
    inventory_parser.add_argument('--low', action='store_true', help='Only show low stock')

    plan_parser = subparsers.add_parser('plan', help='Show the production plan')
    plan_parser.add_argument('--owner', required=True, help='Owner ID')
    plan_parser.add_argument('--date', type=str, help='Forecast date YYYY-MM-DD (default tomorrow)')

    nightly_parser = subparsers.add_parser('nightly', help='Back-fill actuals and forecast tomorrow')
    nightly_parser.add_argument('--owner', help='Process only one owner')

    args = parser.parse_args(argv)

    database = None
    try:
        database = Database(args.db_url)

        if args.setup_db:
            setup_database(database, args.drop_db)
            if not args.command:
                return 0

        api = LedgerAPI(database)
        commands = {
            'forecast': lambda: show_forecasts(api, args),
            'accuracy': lambda: show_accuracy(api, args),
            'inventory': lambda: show_inventory(api, args),
            'plan': lambda: show_production_plan(api, args),
            'nightly': lambda: run_nightly(database, args),
        }

        if args.command not in commands:
            parser.print_help()
            return 1

        return 0 if commands[args.command]() else 1
    except LedgerError as e:
        logger.log_exception('app', e, f"Command {args.command or 'setup'} failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if database is not None:
            database.dispose()


if __name__ == "__main__":
    sys.exit(main())

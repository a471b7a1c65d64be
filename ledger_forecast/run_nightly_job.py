#!/usr/bin/env python
# run_nightly_job.py - Script to run the nightly job

import argparse
import sys

from ledger_forecast.batch.nightly_job import run_nightly_job
from ledger_forecast.db import Database
from ledger_forecast.logging_setup import get_logger


def main(argv=None):
    """Run the nightly job."""
    parser = argparse.ArgumentParser(description='Run the ledger nightly job')
    parser.add_argument('--owner', '-o', action='append', help='Process only this owner (repeatable)')
    parser.add_argument('--db-url', type=str, help='Database URL (defaults to the configured one)')

    args = parser.parse_args(argv)

    logger = get_logger('nightly_job_runner')
    logger.info("Starting nightly job runner...")
    logger.info(f"Owner filter: {', '.join(args.owner) if args.owner else 'All owners'}")

    database = Database(args.db_url)
    try:
        results = run_nightly_job(database, args.owner)
    finally:
        database.dispose()

    for owner_id, owner_results in results['owners'].items():
        if 'error' in owner_results:
            logger.error(f"Owner {owner_id}: {owner_results['error']}")
        else:
            logger.info(
                f"Owner {owner_id}: {owner_results['backfill_actuals']['updated']} actuals filled, "
                f"{owner_results['generate_forecasts']['forecasts']} forecasts for tomorrow"
            )

    if results['success']:
        logger.info(f"Nightly job completed successfully in {results['duration']}")
        return 0

    logger.error(f"Nightly job finished with {results['errors']} errors")
    return 1


if __name__ == "__main__":
    sys.exit(main())

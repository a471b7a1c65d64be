# ledger_forecast/batch/nightly_job.py
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

from sqlalchemy import distinct

from ledger_forecast.db import Database
from ledger_forecast.models import Product
from ledger_forecast.services.forecast_service import ForecastService
from ledger_forecast.exceptions import BatchProcessError
from ledger_forecast.logging_setup import logger as log_manager, get_logger

logger = get_logger('nightly_job')


def get_owner_ids(database: Database) -> list:
    """Get every owner that has at least one active product."""
    with database.session_scope() as session:
        rows = (
            session.query(distinct(Product.owner_id))
            .filter(Product.is_active.is_(True))
            .order_by(Product.owner_id)
            .all()
        )
        return [owner_id for (owner_id,) in rows]


def backfill_actuals(database: Database, owner_id: str, clock=None) -> Dict:
    """Fill yesterday's forecast actuals from the ledger for one owner."""
    clock = clock or datetime.now
    yesterday = clock().date() - timedelta(days=1)

    with database.session_scope() as session:
        updated = ForecastService(session, clock=clock).backfill_actuals(owner_id, yesterday)

    return {
        'success': True,
        'forecast_date': yesterday,
        'updated': updated
    }


def generate_forecasts(database: Database, owner_id: str, clock=None, cancel_event=None) -> Dict:
    """Generate tomorrow's forecasts for one owner."""
    with database.session_scope() as session:
        records = ForecastService(session, clock=clock).generate_forecasts_for_tomorrow(
            owner_id, cancel_event=cancel_event
        )
        return {
            'success': True,
            'forecasts': len(records)
        }


def run_nightly_job(
    database: Database,
    owner_ids: Optional[Iterable[str]] = None,
    clock=None,
    cancel_event=None
) -> Dict:
    """Run the nightly job.

    For each owner: back-fill yesterday's actuals, then forecast tomorrow.
    A failing owner is recorded and the job moves on to the next one.

    Args:
        database: Ledger store
        owner_ids: Owners to process (every owner with active products if None)
        clock: Optional callable returning the current datetime
        cancel_event: Optional threading.Event that stops the job early

    Returns:
        Dictionary with job results

    Raises:
        BatchProcessError if the owner list cannot be read
    """
    clock = clock or datetime.now
    log_info = log_manager.batch_start_log('nightly_job', {'owner_ids': owner_ids})

    try:
        owners = list(owner_ids) if owner_ids is not None else get_owner_ids(database)
    except Exception as e:
        log_manager.batch_end_log(log_info, success=False, result_info={'error': str(e)})
        raise BatchProcessError(f"Could not load owners: {str(e)}") from e

    results = {
        'start_time': log_info['start_time'],
        'end_time': None,
        'duration': None,
        'owners': {},
        'errors': 0,
        'cancelled': False
    }

    for owner_id in owners:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Nightly job cancelled")
            results['cancelled'] = True
            break

        owner_results = {}
        try:
            # Step 1: Back-fill yesterday's actuals
            logger.info(f"# Step 1: Back-fill actuals for owner {owner_id}")
            owner_results['backfill_actuals'] = backfill_actuals(database, owner_id, clock)

            # Step 2: Forecast tomorrow
            logger.info(f"# Step 2: Forecast tomorrow for owner {owner_id}")
            owner_results['generate_forecasts'] = generate_forecasts(
                database, owner_id, clock, cancel_event
            )
        except Exception as e:
            logger.error(f"Error during nightly job for owner {owner_id}: {str(e)}", exc_info=True)
            owner_results['error'] = str(e)
            results['errors'] += 1

        results['owners'][owner_id] = owner_results

    results['success'] = results['errors'] == 0
    results['end_time'] = datetime.now()
    results['duration'] = log_manager.batch_end_log(
        log_info,
        success=results['success'],
        result_info={'owners': len(results['owners']), 'errors': results['errors']}
    )

    return results

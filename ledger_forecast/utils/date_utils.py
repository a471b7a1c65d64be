# ledger_forecast/utils/date_utils.py
from datetime import date, datetime, time, timedelta
from typing import Tuple, Union

DATE_FORMAT = '%Y-%m-%d'
TIME_FORMAT = '%H:%M:%S'

def format_date(value: Union[date, datetime]) -> str:
    """Format a date as YYYY-MM-DD."""
    return value.strftime(DATE_FORMAT)

def format_time(value: Union[time, datetime]) -> str:
    """Format a time as HH:MM:SS."""
    return value.strftime(TIME_FORMAT)

def convert_to_date(value: Union[str, date, datetime]) -> date:
    """Convert a string, date or datetime to a date.

    Args:
        value: 'YYYY-MM-DD' string, date or datetime

    Returns:
        date object

    Raises:
        ValueError if the value cannot be converted
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    raise ValueError(f"Cannot convert {value!r} to a date")

def convert_to_time(value: Union[str, time, datetime]) -> time:
    """Convert a 'HH:MM[:SS]' string, time or datetime to a time."""
    if isinstance(value, datetime):
        return value.time().replace(microsecond=0)
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        text = value.strip()
        fmt = TIME_FORMAT if text.count(':') == 2 else '%H:%M'
        return datetime.strptime(text, fmt).time()
    raise ValueError(f"Cannot convert {value!r} to a time")

def get_tomorrow(today: date) -> date:
    return today + timedelta(days=1)

def get_trailing_window(today: date, days: int) -> Tuple[date, date]:
    """Get the inclusive (start, end) window of the last `days` days up to today."""
    return today - timedelta(days=days), today

def get_accuracy_window(today: date, trailing_days: int) -> Tuple[date, date]:
    """Get the inclusive window scored by the accuracy report.

    Runs from today - trailing_days - 1 up to yesterday.
    """
    end_date = today - timedelta(days=1)
    start_date = today - timedelta(days=trailing_days + 1)
    return start_date, end_date

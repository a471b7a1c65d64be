from .date_utils import (
    format_date, format_time, convert_to_date, convert_to_time,
    get_tomorrow, get_trailing_window, get_accuracy_window
)
from .validation import (
    validate_quantity, validate_price, validate_delta,
    validate_threshold, validate_name
)

__all__ = [
    'format_date',
    'format_time',
    'convert_to_date',
    'convert_to_time',
    'get_tomorrow',
    'get_trailing_window',
    'get_accuracy_window',
    'validate_quantity',
    'validate_price',
    'validate_delta',
    'validate_threshold',
    'validate_name'
]

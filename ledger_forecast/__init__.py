from .config import config
from .db import Database
from .logging_setup import logger, get_logger
from .exceptions import (
    LedgerError, ValidationError, InvalidQuantityError, InsufficientStockError,
    PermissionDeniedError, NotFoundError, ForecastError, InsufficientHistoryError
)

__all__ = [
    'config',
    'Database',
    'logger',
    'get_logger',
    'LedgerError',
    'ValidationError',
    'InvalidQuantityError',
    'InsufficientStockError',
    'PermissionDeniedError',
    'NotFoundError',
    'ForecastError',
    'InsufficientHistoryError'
]

class LedgerError(Exception):
    """Base exception for sales ledger and forecasting errors."""

    default_message = "An error occurred in the sales ledger"
    default_code = None

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(LedgerError):
    """Exception raised for configuration errors."""

    default_message = "Configuration error"


class DatabaseError(LedgerError):
    """Exception raised for database-related errors."""

    default_message = "Database error"


class ValidationError(LedgerError):
    """Exception raised for data validation errors."""

    default_message = "Validation error"
    default_code = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Exception raised when a quantity is zero, negative or not a number."""

    default_message = "Quantity must be a number greater than zero"
    default_code = "INVALID_QUANTITY"


class InsufficientStockError(LedgerError):
    """Exception raised when a sale would take more stock than is on hand."""

    default_code = "INSUFFICIENT_STOCK"

    def __init__(self, available, requested=None, message=None, details=None):
        self.available = available
        self.requested = requested
        if message is None:
            message = f"Insufficient stock: only {available:g} available"
            if requested is not None:
                message += f", {requested:g} requested"
        details = dict(details or {})
        details.setdefault('available', available)
        if requested is not None:
            details.setdefault('requested', requested)
        super().__init__(message, None, details)


class PermissionDeniedError(LedgerError):
    """Exception raised when a past-day sale is changed without admin mode."""

    default_message = "Only today's sales can be changed unless admin mode is enabled"
    default_code = "PERMISSION_DENIED"


class NotFoundError(LedgerError):
    """Exception raised when a requested resource is not found."""

    default_message = "Resource not found"
    default_code = "NOT_FOUND"


class ForecastError(LedgerError):
    """Exception raised for forecasting-related errors."""

    default_message = "Forecasting error"


class InsufficientHistoryError(ForecastError):
    """Exception raised when a product has too few sale-days to forecast."""

    default_code = "INSUFFICIENT_HISTORY"

    def __init__(self, distinct_days, required, message=None, details=None):
        self.distinct_days = distinct_days
        self.required = required
        message = message or (
            f"Not enough sales history to forecast: {distinct_days} of {required} days"
        )
        details = dict(details or {})
        details.setdefault('distinct_days', distinct_days)
        details.setdefault('required', required)
        super().__init__(message, None, details)


class BatchProcessError(LedgerError):
    """Exception raised for batch process errors."""

    default_message = "Batch process error"

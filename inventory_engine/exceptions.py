class InventoryEngineError(Exception):
    """Base exception for Inventory Forecasting Engine errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Inventory Forecasting Engine"
        self.code = code
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


class DatabaseError(InventoryEngineError):
    """Exception raised for database-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class ValidationError(InventoryEngineError):
    """Exception raised for bad input shape or range, before any mutation."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class NotFoundError(InventoryEngineError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code, details)


class ConflictError(InventoryEngineError):
    """Exception raised when an operation conflicts with existing state."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Conflict with existing state"
        super().__init__(message, code, details)


class CycleDetected(ConflictError):
    """Exception raised when SKU mappings form a cycle."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "SKU mapping cycle detected"
        super().__init__(message, code or 'CYCLE_DETECTED', details)


class CalculationError(InventoryEngineError):
    """Exception raised for forecast calculation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Calculation error"
        super().__init__(message, code, details)


class BatchProcessError(InventoryEngineError):
    """Exception raised for batch process errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Batch process error"
        super().__init__(message, code, details)


class DataQualityWarning:
    """Non-fatal data problem reported alongside a successful result.

    Warnings are never raised. The affected sales are excluded from demand
    totals and the condition is aggregated per SKU for operator review.
    """

    UNMAPPED_SKU = 'UNMAPPED_SKU'
    MISSING_BOM = 'MISSING_BOM'
    MAPPING_CYCLE = 'MAPPING_CYCLE'

    def __init__(self, code, sku, events=0, units=0):
        self.code = code
        self.sku = sku
        self.events = events
        self.units = units

    def add(self, quantity):
        """Record one more affected sales event."""
        self.events += 1
        self.units += quantity

    def __repr__(self):
        return f"DataQualityWarning({self.code}, {self.sku}, events={self.events}, units={self.units})"

    def __eq__(self, other):
        if not isinstance(other, DataQualityWarning):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self):
        """Convert the warning to a dictionary."""
        return {
            'code': self.code,
            'sku': self.sku,
            'events': self.events,
            'units': self.units
        }

# Error types for RetailStack Sales Records
# Fetch failures are non-fatal; only a fully failed query batch blocks the view

from typing import Dict


class SalesRecordsError(Exception):
    """Base class for sales records errors"""


class TransientFetchError(SalesRecordsError):
    """A backend operation was unreachable or rejected the request"""

    def __init__(self, operation: str, message: str, status_code: int = 0):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.status_code = status_code


class QueryFailedError(SalesRecordsError):
    """Every fetch in a query batch failed"""

    def __init__(self, errors: Dict[str, Exception]):
        names = ', '.join(sorted(errors))
        super().__init__(f"All sales queries failed ({names})")
        self.errors = errors


class PrintSurfaceUnavailable(SalesRecordsError):
    """The printer could not be opened or did not accept the print job"""

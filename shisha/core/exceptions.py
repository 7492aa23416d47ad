"""
Custom Application Exceptions
"""


class ShishaException(Exception):
    """Base exception for the Shisha application"""

    error_code = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidArgument(ShishaException):
    """Raised when input is missing or malformed"""

    error_code = "invalid_argument"


class NotFound(ShishaException):
    """Raised when a referenced entity does not exist"""

    error_code = "not_found"


class Conflict(ShishaException):
    """Raised when a uniqueness rule would be violated"""

    error_code = "conflict"


class OutOfStock(ShishaException):
    """Raised when a stock record cannot cover the requested quantity"""

    error_code = "out_of_stock"

    def __init__(self, message: str, requested=None, available=None):
        self.requested = requested
        self.available = available
        super().__init__(message)


class ProgramOverrun(ShishaException):
    """Raised when a beneficiary has already completed every program day"""

    error_code = "program_overrun"

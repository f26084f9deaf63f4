class ExpenseTrackerException(Exception):
    """Base exception for expense tracker"""

    pass


class UnauthorizedException(ExpenseTrackerException):
    """Raised when the bearer token is missing, expired or invalid"""

    pass


class NotFoundException(ExpenseTrackerException):
    """Raised when resource not found"""

    pass


class ForbiddenException(ExpenseTrackerException):
    """Raised when a role or ownership rule denies the operation"""

    pass


class ValidationException(ExpenseTrackerException):
    """Raised for business logic validation and state transition errors"""

    pass


class ExtractionException(ExpenseTrackerException):
    """Raised when the receipt extraction model call fails"""

    pass

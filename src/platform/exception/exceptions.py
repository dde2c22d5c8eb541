class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io

    `retryable` tells the caller whether the same request may succeed later
    ("try again") or the input has to change first ("fix your input").
    """

    retryable: bool = False

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class ForbiddenError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 403)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class UnauthenticatedError(CustomBaseError):
    def __init__(self, message: str = 'Authentication required') -> None:
        super().__init__(message, 401)


class IdentityMismatchError(CustomBaseError):
    def __init__(self, message: str = 'Booking owner does not match the authenticated user') -> None:
        super().__init__(message, 403)


class TransactionConflictError(CustomBaseError):
    """Concurrent write detected by the document store; the whole transaction may be re-run."""

    retryable = True

    def __init__(self, message: str = 'Concurrent transaction conflict') -> None:
        super().__init__(message, 409)


class StoreUnavailableError(CustomBaseError):
    retryable = True

    def __init__(self, message: str = 'Document store unavailable') -> None:
        super().__init__(message, 503)


class CommitFailedError(CustomBaseError):
    retryable = True

    def __init__(self, message: str = 'Booking could not be saved, please try again') -> None:
        super().__init__(message, 503)


class TransactionOrderingViolationError(RuntimeError):
    """A transaction read a document after staging a write. Programming defect, never retried."""

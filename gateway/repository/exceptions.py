"""Repository layer exceptions.

These exceptions are raised by repositories when database operations fail.
They should be caught and translated to AppExceptions by the usecase layer.
"""
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, OperationalError, InterfaceError, DBAPIError


class RepositoryException(Exception):
    """Base exception for repository layer errors."""
    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(self.message)


class DuplicateRecordException(RepositoryException):
    """Raised when a unique constraint is violated."""
    def __init__(self, message: str = "Record already exists", detail: str | None = None):
        super().__init__(message, detail)


class DatabaseConnectionException(RepositoryException):
    """Raised when the database can not be reached or is locked."""
    def __init__(self, message: str = "Database connection error", detail: str | None = None):
        super().__init__(message, detail)


class DatabaseOperationException(RepositoryException):
    """Raised when a database operation fails."""
    def __init__(self, message: str = "Database operation failed", detail: str | None = None):
        super().__init__(message, detail)


@contextmanager
def translate_db_errors(operation: str, duplicate_message: str | None = None):
    """Map SQLAlchemy driver errors raised inside the block to repository exceptions.

    Args:
        operation: Short description used in the exception message
        duplicate_message: Message for unique violations; when None they
            are reported as a failed operation
    """
    try:
        yield
    except IntegrityError as e:
        if duplicate_message and "unique" in str(e.orig).lower():
            raise DuplicateRecordException(duplicate_message, detail=str(e.orig)) from e
        raise DatabaseOperationException(f"Failed to {operation}", detail=str(e.orig)) from e
    except (OperationalError, InterfaceError) as e:
        raise DatabaseConnectionException(detail=str(e.orig)) from e
    except DBAPIError as e:
        raise DatabaseOperationException(f"Failed to {operation}", detail=str(e.orig)) from e

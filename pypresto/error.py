from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pypresto.model import PrestoQueryError

__all__ = [
    "Error",
    "Warning",
    "InterfaceError",
    "DatabaseError",
    "InternalError",
    "OperationalError",
    "ProgrammingError",
    "IntegrityError",
    "DataError",
    "NotSupportedError",
    "QueryFailed",
    "TransportError",
    "UnsupportedType",
    "ConversionError",
]


class Error(Exception):
    """Base class of all other error exceptions.

    https://www.python.org/dev/peps/pep-0249/#exceptions
    """


class Warning(Exception):  # noqa: N818,A001
    pass


class InterfaceError(Error):
    pass


class DatabaseError(Error):
    pass


class InternalError(DatabaseError):
    pass


class OperationalError(DatabaseError):
    pass


class ProgrammingError(DatabaseError):
    pass


class IntegrityError(DatabaseError):
    pass


class DataError(DatabaseError):
    pass


class NotSupportedError(DatabaseError):
    pass


class QueryFailed(OperationalError):
    """The service reported the query as FAILED, or could not be asked at all.

    Attributes:
        error: Structured error detail returned by the server, if any.
        query_id: Identifier of the failed query, if the server assigned one.
    """

    def __init__(
        self,
        message: str,
        error: PrestoQueryError | None = None,
        query_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.query_id = query_id


class TransportError(QueryFailed):
    """The statement endpoint could not be reached or answered with a non-200 status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnsupportedType(NotSupportedError):  # noqa: N818
    def __init__(self, type_name: str) -> None:
        super().__init__(f"Unsupported column type: {type_name}")
        self.type_name = type_name


class ConversionError(DataError):
    def __init__(self, value: Any, type_name: str, reason: str | None = None) -> None:
        message = f"Failed to convert {value!r} ({type(value).__name__}) into type {type_name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.value = value
        self.type_name = type_name

from __future__ import annotations

import logging
from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING, Any

import requests

from pypresto.converter import Converter, DefaultTypeConverter
from pypresto.error import NotSupportedError, ProgrammingError, QueryFailed, TransportError
from pypresto.model import PrestoResultPage

if TYPE_CHECKING:
    from pypresto.connection import Connection

_logger = logging.getLogger(__name__)


def process_response(response: requests.Response) -> PrestoResultPage:
    """Decode one response of the statement protocol.

    The service reports query errors with a 200 status and a FAILED state, so
    any other status means the service itself could not be reached.

    Raises:
        TransportError: On a non-200 status or a body that is not a JSON object.
        DataError: If the envelope does not have the expected shape.
    """
    if response.status_code != 200:
        raise TransportError(
            f"Unexpected HTTP status {response.status_code} from {response.url}",
            status_code=response.status_code,
        )
    try:
        body = response.json()
    except ValueError as e:
        raise TransportError(f"Invalid JSON response from {response.url}") from e
    if not isinstance(body, dict):
        raise TransportError(f"Invalid JSON response from {response.url}")
    return PrestoResultPage(body)


class CursorIterator(metaclass=ABCMeta):
    """Abstract base class providing iteration and result fetching capabilities for cursors.

    Implements the iterator protocol on top of ``fetchone``: iteration stops at
    the end of data, which ``fetchone`` reports by returning ``None``.

    Attributes:
        DEFAULT_FETCH_SIZE: Default number of rows returned by ``fetchmany``.
        arraysize: Number of rows to fetch with fetchmany() if size not specified.
    """

    DEFAULT_FETCH_SIZE: int = 1000

    def __init__(self, **kwargs) -> None:
        super().__init__()
        self.arraysize: int = kwargs.get("arraysize", self.DEFAULT_FETCH_SIZE)
        self._rownumber: int | None = None
        self._rowcount: int = -1  # By default, return -1 to indicate that this is not supported.

    @property
    def arraysize(self) -> int:
        return self._arraysize

    @arraysize.setter
    def arraysize(self, value: int) -> None:
        if value <= 0:
            raise ProgrammingError("arraysize must be a positive integer value.")
        self._arraysize = value

    @property
    def rownumber(self) -> int | None:
        return self._rownumber

    @property
    def rowcount(self) -> int:
        return self._rowcount

    @abstractmethod
    def fetchone(self):
        raise NotImplementedError  # pragma: no cover

    @abstractmethod
    def fetchmany(self):
        raise NotImplementedError  # pragma: no cover

    @abstractmethod
    def fetchall(self):
        raise NotImplementedError  # pragma: no cover

    def __next__(self):
        row = self.fetchone()
        if row is None:
            raise StopIteration
        return row

    def __iter__(self):
        return self


class BaseCursor(metaclass=ABCMeta):
    """Abstract base class for all PyPresto cursor implementations.

    Owns statement submission: the POST to the statement endpoint that starts a
    query and yields the first continuation URI. Paging through the results is
    left to the result set built from that URI.

    A cursor is single-owner. It is not synchronized and must not be used from
    several threads at once; separate cursors may run in parallel.
    """

    def __init__(
        self,
        connection: Connection,
        converter: Converter,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._connection = connection
        self._converter = converter

    @staticmethod
    def get_default_converter() -> Converter:
        return DefaultTypeConverter()

    @property
    def connection(self) -> Connection:
        return self._connection

    def _prepare_query(self, operation: str, parameters: Any = None) -> str:
        if parameters:
            raise NotSupportedError("Query parameters are not supported.")
        _logger.debug(operation)
        return operation

    def _submit(self, query: str) -> tuple[str | None, str | None]:
        """Start a query.

        Args:
            query: Raw query text, sent as the request body.

        Returns:
            Tuple of (query_id, next_uri). A ``None`` next_uri means the query
            finished without producing any page of rows.

        Raises:
            TransportError: If the statement endpoint cannot be reached or
                answers with a non-200 status.
            QueryFailed: If the service reports the query as FAILED.
        """
        context = self._connection.context
        try:
            response = self._connection.session.post(
                context.statement_uri,
                data=query.encode("utf-8"),
                headers=self._connection.headers,
                timeout=self._connection.request_timeout,
            )
        except requests.RequestException as e:
            _logger.exception("Failed to execute query.")
            raise TransportError(str(e)) from e
        page = process_response(response)
        if page.is_failed:
            raise QueryFailed(page.failure_message(), page.error, page.query_id)
        _logger.debug("Query %s submitted, state %s.", page.query_id, page.state)
        return page.query_id, page.next_uri

    @abstractmethod
    def execute(self, operation: str, parameters: Any = None, **kwargs):
        raise NotImplementedError  # pragma: no cover

    @abstractmethod
    def executemany(self, operation: str, seq_of_parameters: list[Any], **kwargs) -> None:
        raise NotImplementedError  # pragma: no cover

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError  # pragma: no cover

    def setinputsizes(self, sizes):  # noqa: B027
        """Does nothing by default"""

    def setoutputsize(self, size, column=None):  # noqa: B027
        """Does nothing by default"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

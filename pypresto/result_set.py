from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, cast

import requests

from pypresto.common import BaseCursor, CursorIterator, process_response
from pypresto.converter import Converter
from pypresto.error import (
    DataError,
    Error,
    NotSupportedError,
    ProgrammingError,
    QueryFailed,
    TransportError,
)
from pypresto.model import PrestoColumn, PrestoResultPage

if TYPE_CHECKING:
    from pypresto.connection import Connection

_logger = logging.getLogger(__name__)


class PrestoResultSet(CursorIterator):
    """Lazily paged result of one query.

    The result set follows the ``nextUri`` chain of the statement protocol one
    page at a time. Nothing is fetched until rows or the column schema are
    asked for, and every fetch is a blocking GET on the calling thread.

    States:
        ``UNFETCHED``: no page has been requested yet.
        ``HAS_ROWS``: a page with rows is buffered.
        ``EXHAUSTED``: the last page has been consumed. Terminal.
        ``FAILED``: the service, the transport or the schema failed. Terminal,
        every later read raises the same error again.

    The column schema is established once, from the first page that carries
    ``columns``; one converter is bound per column at that point. A
    :class:`~pypresto.error.ConversionError` while reading a row leaves the
    result set usable and the row unconsumed.

    Example:
        >>> cursor.execute("SELECT name FROM nation")
        >>> result_set = cursor.result_set
        >>> result_set.column_names()
        ['name']
        >>> for row in result_set:
        ...     print(row)
    """

    STATE_UNFETCHED: str = "UNFETCHED"
    STATE_HAS_ROWS: str = "HAS_ROWS"
    STATE_EXHAUSTED: str = "EXHAUSTED"
    STATE_FAILED: str = "FAILED"

    def __init__(
        self,
        connection: Connection,
        converter: Converter,
        query_id: str | None,
        next_uri: str | None,
        arraysize: int,
    ) -> None:
        super().__init__(arraysize=arraysize)
        self._connection: Connection | None = connection
        self._converter = converter
        self._query_id = query_id
        self._next_uri = next_uri

        self._fetched = False
        self._columns: tuple[PrestoColumn, ...] | None = None
        self._converters: tuple[Callable[[Any], Any | None], ...] | None = None
        self._page: PrestoResultPage | None = None
        self._rows: list[list[Any]] = []
        self._row_index = 0
        self._failure: Error | None = None
        self._rownumber = 0
        self._state = self.STATE_UNFETCHED if next_uri else self.STATE_EXHAUSTED

    @property
    def query_id(self) -> str | None:
        return self._query_id

    @property
    def state(self) -> str:
        return self._state

    @property
    def next_uri(self) -> str | None:
        return self._next_uri

    @property
    def fetched(self) -> bool:
        """Whether the column schema has been established."""
        return self._fetched

    @property
    def page(self) -> PrestoResultPage | None:
        return self._page

    @property
    def stats(self) -> dict[str, Any]:
        return self._page.stats if self._page else {}

    @property
    def connection(self) -> Connection:
        if self.is_closed:
            raise ProgrammingError("PrestoResultSet is closed.")
        return cast("Connection", self._connection)

    @property
    def columns(self) -> tuple[PrestoColumn, ...]:
        self._establish_schema()
        return self._columns or ()

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def description(
        self,
    ) -> list[tuple[str, str, None, None, None, None, None]] | None:
        columns = self.columns
        if not self._fetched:
            return None
        return [(c.name, c.type, None, None, None, None, None) for c in columns]

    def _check_failed(self) -> None:
        if self._state == self.STATE_FAILED and self._failure is not None:
            raise self._failure

    def _get_page(self, uri: str) -> PrestoResultPage:
        try:
            response = self.connection.session.get(
                uri,
                headers=self.connection.headers,
                timeout=self.connection.request_timeout,
            )
        except requests.RequestException as e:
            _logger.exception("Failed to fetch result set.")
            raise TransportError(str(e)) from e
        return process_response(response)

    def _bind_columns(self, columns: tuple[PrestoColumn, ...]) -> None:
        if self._columns is not None:
            if columns != self._columns:
                raise DataError(f"Column schema of query {self._query_id} changed between pages.")
            return
        self._converters = tuple(self._converter.get(c.type) for c in columns)
        self._columns = columns
        self._fetched = True

    def _check_rows(self, rows: list[list[Any]]) -> None:
        if not rows:
            return
        if self._converters is None:
            raise DataError(f"Query {self._query_id} returned rows before its columns.")
        width = len(self._converters)
        for row in rows:
            if len(row) != width:
                raise DataError(f"Expected {width} values per row, got {len(row)}.")

    def _fetch(self) -> None:
        """Request the page at the current continuation URI.

        Replaces the buffered rows and advances the continuation URI. Any error
        moves the result set to ``FAILED``.
        """
        self._check_failed()
        if self.is_closed:
            raise ProgrammingError("PrestoResultSet is closed.")
        if not self._next_uri:
            raise ProgrammingError("nextUri is none or empty.")
        _logger.debug("Fetching %s", self._next_uri)
        try:
            page = self._get_page(self._next_uri)
            if page.is_failed:
                raise QueryFailed(page.failure_message(), page.error, page.query_id)
            if page.columns is not None:
                self._bind_columns(page.columns)
            self._check_rows(page.data)
        except Error as e:
            self._state = self.STATE_FAILED
            self._failure = e
            self._page = None
            self._rows = []
            raise
        self._page = page
        self._rows = page.data
        self._row_index = 0
        self._next_uri = page.next_uri
        if self._rows:
            self._state = self.STATE_HAS_ROWS
        elif not self._next_uri:
            self._state = self.STATE_EXHAUSTED

    def _establish_schema(self) -> None:
        """Fetch until a page has carried the column schema or no page is left."""
        self._check_failed()
        while not self._fetched and self._next_uri:
            self._fetch()

    def _buffer_rows(self) -> bool:
        """Make sure a row is buffered, fetching pages as needed.

        Pages without rows are skipped while a continuation URI remains.

        Returns:
            False at the end of data.
        """
        self._check_failed()
        while self._row_index >= len(self._rows):
            if not self._next_uri:
                self._state = self.STATE_EXHAUSTED
                return False
            self._fetch()
        return True

    def _convert_row(self, row: list[Any]) -> tuple[Any | None, ...] | dict[Any, Any | None]:
        converters = cast(tuple[Callable[[Any], Any | None], ...], self._converters)
        return tuple(convert(value) for convert, value in zip(converters, row, strict=True))

    def fetchone(
        self,
    ) -> tuple[Any | None, ...] | dict[Any, Any | None] | None:
        if self.is_closed:
            raise ProgrammingError("PrestoResultSet is closed.")
        if not self._buffer_rows():
            return None
        row = self._convert_row(self._rows[self._row_index])
        self._row_index += 1
        self._rownumber = (self._rownumber or 0) + 1
        return row

    def fetchmany(
        self, size: int | None = None
    ) -> list[tuple[Any | None, ...] | dict[Any, Any | None]]:
        if not size or size <= 0:
            size = self._arraysize
        rows = []
        for _ in range(size):
            row = self.fetchone()
            if row is None:
                break
            rows.append(row)
        return rows

    def fetchall(
        self,
    ) -> list[tuple[Any | None, ...] | dict[Any, Any | None]]:
        rows = []
        while True:
            row = self.fetchone()
            if row is None:
                break
            rows.append(row)
        return rows

    @property
    def is_closed(self) -> bool:
        return self._connection is None

    def close(self) -> None:
        self._connection = None
        self._page = None
        self._rows = []
        self._row_index = 0
        self._next_uri = None
        self._rownumber = None
        self._rowcount = -1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class PrestoDictResultSet(PrestoResultSet):
    # You can override this to use OrderedDict or other dict-like types.
    dict_type: type[Any] = dict

    def __init__(self, *args, dict_type: type[Any] | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        if dict_type:
            self.dict_type = dict_type

    def _convert_row(self, row: list[Any]) -> tuple[Any | None, ...] | dict[Any, Any | None]:
        columns = cast(tuple[PrestoColumn, ...], self._columns)
        converters = cast(tuple[Callable[[Any], Any | None], ...], self._converters)
        return self.dict_type(
            (column.name, convert(value))
            for column, convert, value in zip(columns, converters, row, strict=True)
        )


class WithResultSet:
    def __init__(self):
        super().__init__()

    def _reset_state(self) -> None:
        self.query_id = None
        if self.result_set and not self.result_set.is_closed:
            self.result_set.close()
        self.result_set = None

    @property
    @abstractmethod
    def result_set(self) -> PrestoResultSet | None:
        raise NotImplementedError  # pragma: no cover

    @result_set.setter
    @abstractmethod
    def result_set(self, val: PrestoResultSet | None) -> None:
        raise NotImplementedError  # pragma: no cover

    @property
    def has_result_set(self) -> bool:
        return self.result_set is not None

    @property
    def description(
        self,
    ) -> list[tuple[str, str, None, None, None, None, None]] | None:
        if not self.result_set:
            return None
        return self.result_set.description

    @property
    @abstractmethod
    def query_id(self) -> str | None:
        raise NotImplementedError  # pragma: no cover

    @query_id.setter
    @abstractmethod
    def query_id(self, val: str | None) -> None:
        raise NotImplementedError  # pragma: no cover

    @property
    def state(self) -> str | None:
        if not self.result_set:
            return None
        return self.result_set.state

    @property
    def stats(self) -> dict[str, Any]:
        if not self.result_set:
            return {}
        return self.result_set.stats


class WithFetch(BaseCursor, CursorIterator, WithResultSet):
    """Mixin providing shared properties, fetch, lifecycle, and sync iteration for SQL cursors.

    Subclasses override ``execute()`` and optionally ``__init__``.
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._query_id: str | None = None
        self._result_set: PrestoResultSet | None = None

    @property
    def arraysize(self) -> int:
        return self._arraysize

    @arraysize.setter
    def arraysize(self, value: int) -> None:
        if value <= 0:
            raise ProgrammingError("arraysize must be a positive integer value.")
        self._arraysize = value

    @property
    def result_set(self) -> PrestoResultSet | None:
        return self._result_set

    @result_set.setter
    def result_set(self, val) -> None:
        self._result_set = val

    @property
    def query_id(self) -> str | None:
        return self._query_id

    @query_id.setter
    def query_id(self, val) -> None:
        self._query_id = val

    @property
    def rownumber(self) -> int | None:
        return self.result_set.rownumber if self.result_set else None

    @property
    def rowcount(self) -> int:
        return self.result_set.rowcount if self.result_set else -1

    def close(self) -> None:
        """Close the cursor and release associated resources."""
        if self.result_set and not self.result_set.is_closed:
            self.result_set.close()

    def executemany(
        self,
        operation: str,
        seq_of_parameters: list[Any],
        **kwargs,
    ) -> None:
        raise NotSupportedError("Query parameters are not supported.")

    def fetchone(
        self,
    ) -> tuple[Any | None, ...] | dict[Any, Any | None] | None:
        """Fetch the next row of the result set.

        Returns:
            A tuple representing the next row, or None if no more rows.

        Raises:
            ProgrammingError: If no result set is available.
        """
        if not self.has_result_set:
            raise ProgrammingError("No result set.")
        result_set = cast(PrestoResultSet, self.result_set)
        return result_set.fetchone()

    def fetchmany(
        self, size: int | None = None
    ) -> list[tuple[Any | None, ...] | dict[Any, Any | None]]:
        """Fetch multiple rows from the result set.

        Args:
            size: Maximum number of rows to fetch. Defaults to arraysize.

        Raises:
            ProgrammingError: If no result set is available.
        """
        if not self.has_result_set:
            raise ProgrammingError("No result set.")
        result_set = cast(PrestoResultSet, self.result_set)
        return result_set.fetchmany(size)

    def fetchall(
        self,
    ) -> list[tuple[Any | None, ...] | dict[Any, Any | None]]:
        if not self.has_result_set:
            raise ProgrammingError("No result set.")
        result_set = cast(PrestoResultSet, self.result_set)
        return result_set.fetchall()

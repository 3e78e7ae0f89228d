from __future__ import annotations

import logging
from typing import Any

from pypresto.result_set import PrestoDictResultSet, PrestoResultSet, WithFetch

_logger = logging.getLogger(__name__)


class Cursor(WithFetch):
    """A DB API 2.0 compliant cursor for executing SQL queries on Presto.

    ``execute`` only submits the statement. Result pages are requested as rows
    are fetched, so a query failure reported by the service after submission
    surfaces from ``fetchone``/``fetchmany``/``fetchall`` or from
    ``description``.

    Attributes:
        description: Sequence of column descriptions for the last query.
        rowcount: Always -1, the protocol does not report affected rows.
        arraysize: Default number of rows to fetch with fetchmany().

    Example:
        >>> cursor = connection.cursor()
        >>> cursor.execute("SELECT nationkey, name FROM tpch.tiny.nation")
        >>> for nationkey, name in cursor:
        ...     print(nationkey, name)
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._result_set_class: type[PrestoResultSet] = PrestoResultSet
        self._result_set_kwargs: dict[str, Any] = {}

    def execute(
        self,
        operation: str,
        parameters: Any = None,
        **kwargs,
    ) -> Cursor:
        """Execute a SQL query.

        Args:
            operation: SQL query string to execute.
            parameters: Must be empty, bound parameters are not supported.

        Returns:
            Self reference for method chaining.

        Raises:
            NotSupportedError: If parameters are given.
            TransportError: If the coordinator cannot be reached.
            QueryFailed: If the coordinator rejects the query.
        """
        self._reset_state()
        query = self._prepare_query(operation, parameters)
        self.query_id, next_uri = self._submit(query)
        self.result_set = self._result_set_class(
            self._connection,
            self._converter,
            self.query_id,
            next_uri,
            self.arraysize,
            **self._result_set_kwargs,
        )
        return self


class DictCursor(Cursor):
    """A cursor that returns query results as dictionaries instead of tuples.

    Example:
        >>> cursor = connection.cursor(DictCursor)
        >>> cursor.execute("SELECT name, regionkey FROM tpch.tiny.nation")
        >>> row = cursor.fetchone()
        >>> print(row["name"])
    """

    def __init__(self, **kwargs) -> None:
        dict_type = kwargs.pop("dict_type", None)
        super().__init__(**kwargs)
        self._result_set_class = PrestoDictResultSet
        if dict_type:
            self._result_set_kwargs["dict_type"] = dict_type

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import requests

import pypresto
from pypresto.converter import Converter
from pypresto.error import NotSupportedError, ProgrammingError
from pypresto.util import parse_dsn

if TYPE_CHECKING:
    from pypresto.cursor import Cursor

_logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080
DEFAULT_CATALOG = "hive"
DEFAULT_SCHEMA = "default"
DEFAULT_USER = "pypresto"

HEADER_USER = "X-Presto-User"
HEADER_CATALOG = "X-Presto-Catalog"
HEADER_SCHEMA = "X-Presto-Schema"

ENV_HOST = "PRESTO_HOST"
ENV_PORT = "PRESTO_PORT"
ENV_CATALOG = "PRESTO_CATALOG"
ENV_SCHEMA = "PRESTO_SCHEMA"
ENV_USER = "PRESTO_USER"


@dataclass(frozen=True)
class ConnectionContext:
    """Where statements are sent and on whose behalf.

    Shared read-only by every cursor of a connection.
    """

    endpoint: str
    catalog: str
    schema: str
    user: str

    @property
    def statement_uri(self) -> str:
        return f"http://{self.endpoint}/v1/statement"

    @property
    def headers(self) -> dict[str, str]:
        return {
            HEADER_USER: self.user,
            HEADER_CATALOG: self.catalog,
            HEADER_SCHEMA: self.schema,
        }


class Connection:
    """A DB API 2.0 connection to a Presto coordinator.

    Connection parameters are resolved in order from keyword arguments, the data
    source name, the ``PRESTO_*`` environment variables and the defaults. A
    password in the data source name is accepted and ignored.

    The connection owns the :class:`requests.Session` it creates; a session
    passed in by the caller is left open on :meth:`close`. Transport settings
    such as TLS, proxies and retries belong on that session.

    Example:
        >>> with Connection("presto://analyst@coordinator:8080/hive/web") as conn:
        ...     cursor = conn.cursor()
        ...     cursor.execute("SELECT 1")
        ...     print(cursor.fetchall())
    """

    def __init__(
        self,
        dsn: str | None = None,
        host: str | None = None,
        port: int | None = None,
        catalog: str | None = None,
        schema: str | None = None,
        user: str | None = None,
        password: str | None = None,
        session: requests.Session | None = None,
        request_timeout: float | tuple[float, float] | None = None,
        converter: Converter | None = None,
        cursor_class: type[Cursor] | None = None,
        **kwargs,
    ) -> None:
        parsed = parse_dsn(dsn) if dsn else {}
        host = host or parsed.get("host") or os.getenv(ENV_HOST) or DEFAULT_HOST
        port = port or parsed.get("port") or self._env_port() or DEFAULT_PORT
        self._context = ConnectionContext(
            endpoint=f"{host}:{port}",
            catalog=catalog or parsed.get("catalog") or os.getenv(ENV_CATALOG) or DEFAULT_CATALOG,
            schema=schema or parsed.get("schema") or os.getenv(ENV_SCHEMA) or DEFAULT_SCHEMA,
            user=user or parsed.get("user") or os.getenv(ENV_USER) or DEFAULT_USER,
        )
        if password or parsed.get("password"):
            _logger.debug("Password authentication is not supported, ignoring the password.")

        if session is not None:
            self._session: requests.Session | None = session
            self._owns_session = False
        else:
            self._session = requests.Session()
            self._owns_session = True
        self._request_timeout = request_timeout
        self._converter = converter
        if cursor_class:
            self.cursor_class: type[Cursor] = cursor_class
        else:
            from pypresto.cursor import Cursor

            self.cursor_class = Cursor
        self._kwargs = kwargs

    @staticmethod
    def _env_port() -> int | None:
        value = os.getenv(ENV_PORT)
        if not value:
            return None
        try:
            return int(value)
        except ValueError as e:
            raise ProgrammingError(f"Invalid {ENV_PORT}: {value}") from e

    @property
    def context(self) -> ConnectionContext:
        return self._context

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            raise ProgrammingError("Connection is closed.")
        return self._session

    @property
    def request_timeout(self) -> float | tuple[float, float] | None:
        return self._request_timeout

    @property
    def headers(self) -> dict[str, str]:
        headers = {"User-Agent": pypresto.user_agent}
        headers.update(self._context.headers)
        return headers

    @property
    def is_closed(self) -> bool:
        return self._session is None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def cursor(self, cursor: type[Cursor] | None = None, **kwargs) -> Cursor:
        """Create a new cursor bound to this connection.

        Args:
            cursor: Cursor class to instantiate. Defaults to ``cursor_class``.
            **kwargs: Overrides of the keyword arguments given to the connection.
        """
        if self.is_closed:
            raise ProgrammingError("Connection is closed.")
        kwargs = {**self._kwargs, **kwargs}
        if not cursor:
            cursor = self.cursor_class
        converter = kwargs.pop("converter", self._converter)
        if not converter:
            converter = cursor.get_default_converter()
        return cursor(connection=self, converter=converter, **kwargs)

    def close(self) -> None:
        if self._session is not None and self._owns_session:
            self._session.close()
        self._session = None

    def commit(self) -> None:
        """Does nothing, statements are not transactional."""

    def rollback(self) -> None:
        raise NotSupportedError("Transactions are not supported.")

    def execute(self, operation: str, parameters: Any = None, **kwargs) -> Cursor:
        return self.cursor().execute(operation, parameters, **kwargs)

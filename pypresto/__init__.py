from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

from pypresto.error import *  # noqa: F403

if TYPE_CHECKING:
    from pypresto.connection import Connection

try:
    from importlib.metadata import version

    __version__ = version("PyPresto")
except Exception:
    __version__ = "unknown"
user_agent: str = f"PyPresto/{__version__}"

# Globals https://www.python.org/dev/peps/pep-0249/#globals
apilevel: str = "2.0"
# Threads may share the module, but not connections or cursors.
threadsafety: int = 1
paramstyle: str = "pyformat"


class DBAPITypeObject(frozenset[str]):
    """Type Objects and Constructors

    https://www.python.org/dev/peps/pep-0249/#type-objects-and-constructors
    """

    def __eq__(self, other: object):
        if isinstance(other, frozenset):
            return frozenset.__eq__(self, other)
        return other in self

    def __ne__(self, other: object):
        if isinstance(other, frozenset):
            return frozenset.__ne__(self, other)
        return other not in self

    def __hash__(self):
        return frozenset.__hash__(self)


# https://prestodb.io/docs/current/language/types.html
STRING: DBAPITypeObject = DBAPITypeObject(
    ("char", "varchar", "map(varchar,varchar)", "array(varchar)")
)
BINARY: DBAPITypeObject = DBAPITypeObject(("varbinary",))
BOOLEAN: DBAPITypeObject = DBAPITypeObject(("boolean",))
NUMBER: DBAPITypeObject = DBAPITypeObject(
    ("tinyint", "smallint", "integer", "bigint", "real", "double")
)
DATE: DBAPITypeObject = DBAPITypeObject(("date",))
DATETIME: DBAPITypeObject = DBAPITypeObject(("timestamp", "timestamp with time zone"))

Date: type[datetime.date] = datetime.date
Timestamp: type[datetime.datetime] = datetime.datetime
Binary: type[bytes] = bytes


def connect(*args, **kwargs) -> Connection:
    """Create a new database connection to a Presto coordinator.

    This is an explicit factory: nothing is registered globally, and every call
    returns an independent :class:`~pypresto.connection.Connection`.

    Args:
        dsn: Data source name of the form
            ``presto://[user[:password]@]host[:port]/[catalog[/schema]]``.
        host: Coordinator host. Defaults to ``PRESTO_HOST`` or "localhost".
        port: Coordinator port. Defaults to ``PRESTO_PORT`` or 8080.
        catalog: Catalog name. Defaults to ``PRESTO_CATALOG`` or "hive".
        schema: Schema name. Defaults to ``PRESTO_SCHEMA`` or "default".
        user: Identity sent with every request. Defaults to ``PRESTO_USER``
            or "pypresto".
        session: ``requests.Session`` to send requests with. A new session is
            created and owned by the connection when omitted.
        request_timeout: Timeout passed to every HTTP request.
        converter: Converter used by the cursors of this connection.
        cursor_class: Cursor class returned by ``Connection.cursor()``.
        **kwargs: Additional keyword arguments passed to every cursor, such
            as ``arraysize``.

    Returns:
        A Connection object that can be used to create cursors and execute queries.

    Example:
        >>> import pypresto
        >>> conn = pypresto.connect("presto://analyst@coordinator/hive/web")
        >>> cursor = conn.cursor()
        >>> cursor.execute("SELECT * FROM page_views LIMIT 10")
        >>> results = cursor.fetchall()
    """
    from pypresto.connection import Connection

    return Connection(*args, **kwargs)

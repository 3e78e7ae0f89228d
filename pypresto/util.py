from __future__ import annotations

from typing import Any
from urllib.parse import unquote, urlsplit

from pypresto.error import ProgrammingError

DSN_SCHEME = "presto"


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Split a data source name into connection parameters.

    The form is ``presto://[user[:password]@]host[:port]/[catalog[/schema]]``.
    Only the parts present in ``dsn`` are set; absent parts are ``None`` so the
    caller can fall back to environment variables and defaults.

    Args:
        dsn: Data source name. An empty string is accepted.

    Returns:
        Dictionary with the keys ``host``, ``port``, ``catalog``, ``schema``,
        ``user`` and ``password``.

    Raises:
        ProgrammingError: If the scheme is not ``presto`` or the port is invalid.

    Example:
        >>> parse_dsn("presto://name@example:9000/tree/birch")["schema"]
        'birch'
    """
    parts = urlsplit(dsn)
    if parts.scheme and parts.scheme != DSN_SCHEME:
        raise ProgrammingError(f"Unsupported data source scheme: {parts.scheme}")
    try:
        port = parts.port
    except ValueError as e:
        raise ProgrammingError(f"Invalid port in data source name: {dsn}") from e

    segments = [s for s in parts.path.split("/") if s]
    return {
        "host": parts.hostname or None,
        "port": port,
        "catalog": unquote(segments[0]) if len(segments) > 0 else None,
        "schema": unquote(segments[1]) if len(segments) > 1 else None,
        "user": unquote(parts.username) if parts.username else None,
        "password": unquote(parts.password) if parts.password else None,
    }

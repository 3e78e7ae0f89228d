from __future__ import annotations

from typing import Any

from pypresto.converter import ColumnType
from pypresto.error import DataError, UnsupportedType


class PrestoQueryError:
    """Structured error detail carried by a FAILED response envelope."""

    def __init__(self, response: dict[str, Any]) -> None:
        self._message: str | None = response.get("message")
        self._error_code: int | None = response.get("errorCode")
        self._error_name: str | None = response.get("errorName")
        self._error_type: str | None = response.get("errorType")
        self._failure_info: dict[str, Any] | None = response.get("failureInfo")
        self._error_location: dict[str, Any] | None = response.get("errorLocation")

    @property
    def message(self) -> str | None:
        return self._message

    @property
    def error_code(self) -> int | None:
        return self._error_code

    @property
    def error_name(self) -> str | None:
        return self._error_name

    @property
    def error_type(self) -> str | None:
        return self._error_type

    @property
    def failure_info(self) -> dict[str, Any] | None:
        return self._failure_info

    @property
    def error_location(self) -> dict[str, Any] | None:
        return self._error_location

    def __str__(self) -> str:
        parts = [p for p in (self._error_name, self._message) if p]
        return ": ".join(parts) if parts else "unknown error"

    def __repr__(self) -> str:
        return (
            f"PrestoQueryError(error_name={self._error_name!r}, "
            f"error_code={self._error_code!r}, message={self._message!r})"
        )


class PrestoColumn:
    def __init__(self, response: dict[str, Any]) -> None:
        if "name" not in response or "type" not in response:
            raise DataError(f"Malformed column: {response!r}")
        self._name: str = response["name"]
        self._type: str = response["type"]
        self._type_signature: dict[str, Any] = response.get("typeSignature") or {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> str:
        return self._type

    @property
    def type_signature(self) -> dict[str, Any]:
        return self._type_signature

    @property
    def column_type(self) -> ColumnType | None:
        try:
            return ColumnType.from_declared(self._type)
        except UnsupportedType:
            return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrestoColumn):
            return NotImplemented
        return self._name == other._name and self._type == other._type

    def __hash__(self) -> int:
        return hash((self._name, self._type))

    def __repr__(self) -> str:
        return f"PrestoColumn(name={self._name!r}, type={self._type!r})"


class PrestoResultPage:
    """One decoded response of the statement protocol.

    https://prestodb.io/docs/current/develop/client-protocol.html
    """

    STATE_QUEUED: str = "QUEUED"
    STATE_PLANNING: str = "PLANNING"
    STATE_STARTING: str = "STARTING"
    STATE_RUNNING: str = "RUNNING"
    STATE_FINISHED: str = "FINISHED"
    STATE_FAILED: str = "FAILED"

    def __init__(self, response: Any) -> None:
        if not isinstance(response, dict):
            raise DataError(f"Expected a JSON object, got {type(response).__name__}")
        self._query_id: str | None = response.get("id")
        self._info_uri: str | None = response.get("infoUri")
        self._next_uri: str | None = response.get("nextUri") or None
        self._partial_cancel_uri: str | None = response.get("partialCancelUri")

        columns = response.get("columns")
        self._columns: tuple[PrestoColumn, ...] | None = (
            tuple(PrestoColumn(c) for c in columns) if columns is not None else None
        )

        data = response.get("data")
        if data is None:
            data = []
        if not isinstance(data, list) or not all(isinstance(r, list) for r in data):
            raise DataError("KeyError `data` is not a list of rows")
        self._data: list[list[Any]] = data

        self._stats: dict[str, Any] = response.get("stats") or {}
        self._state: str | None = self._stats.get("state")

        error = response.get("error")
        self._error: PrestoQueryError | None = PrestoQueryError(error) if error else None

    @property
    def query_id(self) -> str | None:
        return self._query_id

    @property
    def info_uri(self) -> str | None:
        return self._info_uri

    @property
    def next_uri(self) -> str | None:
        return self._next_uri

    @property
    def partial_cancel_uri(self) -> str | None:
        return self._partial_cancel_uri

    @property
    def columns(self) -> tuple[PrestoColumn, ...] | None:
        return self._columns

    @property
    def data(self) -> list[list[Any]]:
        return self._data

    @property
    def stats(self) -> dict[str, Any]:
        return self._stats

    @property
    def state(self) -> str | None:
        return self._state

    @property
    def error(self) -> PrestoQueryError | None:
        return self._error

    @property
    def is_failed(self) -> bool:
        return self._state == self.STATE_FAILED

    @property
    def is_last(self) -> bool:
        return self._next_uri is None

    def failure_message(self) -> str:
        if self._error:
            return f"Query {self._query_id} failed: {self._error}"
        return f"Query {self._query_id} failed."

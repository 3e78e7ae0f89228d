from __future__ import annotations

import base64
import binascii
import logging
import math
import re
from abc import ABCMeta, abstractmethod
from collections.abc import Callable
from copy import copy
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Any

from dateutil.tz import UTC, gettz, tzlocal, tzoffset

from pypresto.error import ConversionError, UnsupportedType

_logger = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
_TIMESTAMP_SECONDS_FORMAT = "%Y-%m-%d %H:%M:%S"
_DATE_FORMAT = "%Y-%m-%d"
# datetime carries microseconds; finer digits are truncated.
_MAX_FRACTION_DIGITS = 6

_BIGINT_MIN = -(2**63)
_BIGINT_MAX = 2**63 - 1

_LOCAL_ZONE = tzlocal()

_OFFSET_ZONE_PATTERN = re.compile(r"^(?P<sign>[+-])(?P<hours>\d{2}):?(?P<minutes>\d{2})$")

# Non-finite doubles are sent as strings because JSON has no literal for them.
_DOUBLE_SENTINELS: dict[str, float] = {
    "Infinity": math.inf,
    "-Infinity": -math.inf,
    "NaN": math.nan,
}

_BOUNDED_CHAR_PATTERN = re.compile(r"^(var)?char(\(\d+\))?$")
_TIMESTAMP_PATTERN = re.compile(r"^timestamp(\(\d+\))?(?P<tz> with time zone)?$")


class ColumnType(str, Enum):
    """Declared column types with a registered converter.

    https://prestodb.io/docs/current/language/types.html
    """

    VARCHAR = "varchar"
    BOOLEAN = "boolean"
    TINYINT = "tinyint"
    SMALLINT = "smallint"
    INTEGER = "integer"
    BIGINT = "bigint"
    REAL = "real"
    DOUBLE = "double"
    DATE = "date"
    TIMESTAMP = "timestamp"
    TIMESTAMP_WITH_TIMEZONE = "timestamp with time zone"
    VARBINARY = "varbinary"
    MAP_VARCHAR = "map(varchar,varchar)"
    ARRAY_VARCHAR = "array(varchar)"

    @classmethod
    def from_declared(cls, type_: str) -> ColumnType:
        """Resolve the type string of a column description.

        Case and whitespace are normalised, so ``"map(varchar, varchar)"`` and
        ``"MAP(VARCHAR,VARCHAR)"`` resolve to the same member. Bounded
        ``varchar(n)``/``char(n)`` and ``timestamp(p)`` are accepted.

        Raises:
            UnsupportedType: If no member matches.
        """
        normalized = " ".join(type_.lower().split())
        normalized = re.sub(r"\s*,\s*", ",", normalized)
        normalized = re.sub(r"\(\s+", "(", re.sub(r"\s+\)", ")", normalized))
        if _BOUNDED_CHAR_PATTERN.match(normalized):
            return cls.VARCHAR
        match = _TIMESTAMP_PATTERN.match(normalized)
        if match:
            return cls.TIMESTAMP_WITH_TIMEZONE if match.group("tz") else cls.TIMESTAMP
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedType(type_) from None


def _is_number(value: Any) -> bool:
    # bool is a subclass of int but never a valid numeric wire value.
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_varchar(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise ConversionError(value, ColumnType.VARCHAR.value)


def _to_boolean(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    raise ConversionError(value, ColumnType.BOOLEAN.value)


def _to_int(value: Any) -> int | None:
    """Truncate a JSON number to a 64-bit integer.

    Integral columns may be decoded as floats, so the fractional part is dropped
    rather than rejected.
    """
    if value is None:
        return None
    if not _is_number(value):
        raise ConversionError(value, ColumnType.BIGINT.value)
    try:
        converted = int(value)
    except (ValueError, OverflowError) as e:
        raise ConversionError(value, ColumnType.BIGINT.value, str(e)) from e
    if not _BIGINT_MIN <= converted <= _BIGINT_MAX:
        raise ConversionError(value, ColumnType.BIGINT.value, "out of 64-bit range")
    return converted


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    if _is_number(value):
        return float(value)
    if isinstance(value, str) and value in _DOUBLE_SENTINELS:
        return _DOUBLE_SENTINELS[value]
    raise ConversionError(value, ColumnType.DOUBLE.value)


def _to_date(value: Any) -> date | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConversionError(value, ColumnType.DATE.value)
    try:
        return datetime.strptime(value, _DATE_FORMAT).date()
    except ValueError as e:
        raise ConversionError(value, ColumnType.DATE.value, str(e)) from e


def _parse_timestamp(text: str) -> datetime:
    """Parse ``YYYY-MM-DD HH:MM:SS[.fraction]`` of any precision.

    Raises:
        ValueError: If the text does not match.
    """
    seconds, dot, fraction = text.partition(".")
    if not dot:
        return datetime.strptime(text, _TIMESTAMP_SECONDS_FORMAT)
    if not fraction.isdigit():
        raise ValueError(f"invalid fractional seconds {fraction!r}")
    return datetime.strptime(
        f"{seconds}.{fraction[:_MAX_FRACTION_DIGITS]}", _TIMESTAMP_FORMAT
    )


def _resolve_zone(name: str) -> tzinfo:
    """Resolve a zone identifier or a ``±HH:MM`` offset.

    Raises:
        ValueError: If the zone is unknown.
    """
    if name.upper() in ("UTC", "Z"):
        return UTC
    match = _OFFSET_ZONE_PATTERN.match(name)
    if match:
        hours, minutes = int(match.group("hours")), int(match.group("minutes"))
        if hours > 23 or minutes > 59:
            raise ValueError(f"invalid offset {name!r}")
        offset = hours * 3600 + minutes * 60
        return tzoffset(None, -offset if match.group("sign") == "-" else offset)
    # gettz reads absolute and relative paths from the local filesystem.
    if name.startswith("/") or ".." in name:
        raise ValueError(f"unknown time zone {name!r}")
    try:
        zone = gettz(name)
    except (ValueError, OSError) as e:
        raise ValueError(f"unknown time zone {name!r}: {e}") from e
    if zone is None:
        raise ValueError(f"unknown time zone {name!r}")
    return zone


def _to_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConversionError(value, ColumnType.TIMESTAMP.value)
    try:
        return _parse_timestamp(value).replace(tzinfo=_LOCAL_ZONE)
    except ValueError as e:
        raise ConversionError(value, ColumnType.TIMESTAMP.value, str(e)) from e


def _to_datetime_with_tz(value: Any) -> datetime | None:
    """Parse ``YYYY-MM-DD HH:MM:SS.fff <zone>``.

    The zone is a region identifier such as ``Europe/London``, ``UTC`` or a
    ``±HH:MM`` offset. A trailing blank zone means UTC. A value with no zone part
    at all is read in the local zone, like a plain timestamp.
    """
    if value is None:
        return None
    type_name = ColumnType.TIMESTAMP_WITH_TIMEZONE.value
    if not isinstance(value, str):
        raise ConversionError(value, type_name)
    parts = value.split(" ", 2)
    if len(parts) < 2:
        raise ConversionError(value, type_name)
    try:
        if len(parts) == 2:
            zone = _LOCAL_ZONE
        elif not parts[2].strip():
            zone = UTC
        else:
            zone = _resolve_zone(parts[2])
        parsed = _parse_timestamp(f"{parts[0]} {parts[1]}")
    except ValueError as e:
        raise ConversionError(value, type_name, str(e)) from e
    return parsed.replace(tzinfo=zone)


def _to_binary(value: Any) -> bytes | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConversionError(value, ColumnType.VARBINARY.value)
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise ConversionError(value, ColumnType.VARBINARY.value, str(e)) from e


def _to_map(value: Any) -> dict[str, str] | None:
    if value is None:
        return None
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ConversionError(value, ColumnType.MAP_VARCHAR.value)
    return dict(value)


def _to_array(value: Any) -> list[str] | None:
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConversionError(value, ColumnType.ARRAY_VARCHAR.value)
    return list(value)


_DEFAULT_CONVERTERS: dict[ColumnType, Callable[[Any], Any | None]] = {
    ColumnType.VARCHAR: _to_varchar,
    ColumnType.BOOLEAN: _to_boolean,
    ColumnType.TINYINT: _to_int,
    ColumnType.SMALLINT: _to_int,
    ColumnType.INTEGER: _to_int,
    ColumnType.BIGINT: _to_int,
    ColumnType.REAL: _to_float,
    ColumnType.DOUBLE: _to_float,
    ColumnType.DATE: _to_date,
    ColumnType.TIMESTAMP: _to_datetime,
    ColumnType.TIMESTAMP_WITH_TIMEZONE: _to_datetime_with_tz,
    ColumnType.VARBINARY: _to_binary,
    ColumnType.MAP_VARCHAR: _to_map,
    ColumnType.ARRAY_VARCHAR: _to_array,
}


class Converter(metaclass=ABCMeta):
    """Abstract base class for converting decoded JSON values to Python objects.

    A converter holds one conversion function per :class:`ColumnType`. Result
    sets look the functions up once, when the column schema of a query is
    established, and apply them to every value of that column.

    Attributes:
        mappings: Dictionary mapping column types to conversion functions.
    """

    def __init__(self, mappings: dict[ColumnType, Callable[[Any], Any | None]]) -> None:
        if mappings:
            self._mappings = mappings
        else:
            self._mappings = {}

    @property
    def mappings(self) -> dict[ColumnType, Callable[[Any], Any | None]]:
        return self._mappings

    def get(self, type_: str | ColumnType) -> Callable[[Any], Any | None]:
        """Get the conversion function for a declared column type.

        Args:
            type_: A :class:`ColumnType` or the type string of a column description.

        Raises:
            UnsupportedType: If the type is unknown or has no registered function.
        """
        column_type = type_ if isinstance(type_, ColumnType) else ColumnType.from_declared(type_)
        converter = self._mappings.get(column_type)
        if converter is None:
            raise UnsupportedType(column_type.value)
        return converter

    def set(self, type_: ColumnType, converter: Callable[[Any], Any | None]) -> None:
        self._mappings[type_] = converter

    def remove(self, type_: ColumnType) -> None:
        self._mappings.pop(type_, None)

    def update(self, mappings: dict[ColumnType, Callable[[Any], Any | None]]) -> None:
        self._mappings.update(mappings)

    @abstractmethod
    def convert(self, type_: str | ColumnType, value: Any) -> Any | None:
        raise NotImplementedError  # pragma: no cover


class DefaultTypeConverter(Converter):
    """Converter for every type in :class:`ColumnType`.

    Example:
        >>> converter = DefaultTypeConverter()
        >>> converter.convert("bigint", 1000.0)
        1000
        >>> converter.convert("double", "NaN")
        nan
    """

    def __init__(self) -> None:
        super().__init__(mappings=copy(_DEFAULT_CONVERTERS))

    def convert(self, type_: str | ColumnType, value: Any) -> Any | None:
        return self.get(type_)(value)

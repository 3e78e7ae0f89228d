import math
from datetime import date, datetime, timedelta

import pytest
from dateutil.tz import UTC, gettz, tzlocal

from pypresto.converter import (
    ColumnType,
    DefaultTypeConverter,
    _to_array,
    _to_binary,
    _to_boolean,
    _to_date,
    _to_datetime,
    _to_datetime_with_tz,
    _to_float,
    _to_int,
    _to_map,
    _to_varchar,
)
from pypresto.error import ConversionError, UnsupportedType


class TestColumnType:
    @pytest.mark.parametrize(
        ("declared", "expected"),
        [
            ("varchar", ColumnType.VARCHAR),
            ("VARCHAR", ColumnType.VARCHAR),
            ("varchar(25)", ColumnType.VARCHAR),
            ("char(1)", ColumnType.VARCHAR),
            ("bigint", ColumnType.BIGINT),
            ("integer", ColumnType.INTEGER),
            ("double", ColumnType.DOUBLE),
            ("boolean", ColumnType.BOOLEAN),
            ("timestamp", ColumnType.TIMESTAMP),
            ("timestamp(3)", ColumnType.TIMESTAMP),
            ("timestamp(9)", ColumnType.TIMESTAMP),
            ("timestamp with time zone", ColumnType.TIMESTAMP_WITH_TIMEZONE),
            ("timestamp(3) with time zone", ColumnType.TIMESTAMP_WITH_TIMEZONE),
            ("varbinary", ColumnType.VARBINARY),
            ("map(varchar,varchar)", ColumnType.MAP_VARCHAR),
            ("map(varchar, varchar)", ColumnType.MAP_VARCHAR),
            ("array(varchar)", ColumnType.ARRAY_VARCHAR),
            ("date", ColumnType.DATE),
        ],
    )
    def test_from_declared(self, declared, expected):
        assert ColumnType.from_declared(declared) is expected

    @pytest.mark.parametrize(
        "declared",
        ["decimal(10,2)", "array(bigint)", "map(varchar,bigint)", "row(x bigint)", "json", ""],
    )
    def test_from_declared_unsupported(self, declared):
        with pytest.raises(UnsupportedType) as exc_info:
            ColumnType.from_declared(declared)
        assert exc_info.value.type_name == declared


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("c0r0", "c0r0"),
        ("", ""),
        (None, None),
    ],
)
def test_to_varchar(value, expected):
    assert _to_varchar(value) == expected


@pytest.mark.parametrize("value", [1.0, True, ["a"], {"a": "b"}])
def test_to_varchar_invalid(value):
    with pytest.raises(ConversionError):
        _to_varchar(value)


@pytest.mark.parametrize(("value", "expected"), [(True, True), (False, False), (None, None)])
def test_to_boolean(value, expected):
    assert _to_boolean(value) is expected


@pytest.mark.parametrize("value", ["true", 1, 0.0])
def test_to_boolean_invalid(value):
    with pytest.raises(ConversionError):
        _to_boolean(value)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1000.0, 1000),
        (12345, 12345),
        (-7.9, -7),
        (9223372036854775807, 9223372036854775807),
        (None, None),
    ],
)
def test_to_int(value, expected):
    actual = _to_int(value)
    assert actual == expected
    assert actual is None or type(actual) is int


@pytest.mark.parametrize(
    "value",
    [
        "foo",
        "Infinity",
        "NaN",
        True,
        float("inf"),
        float("nan"),
        1e30,
        -1e30,
        9223372036854775808,
        -9223372036854775809,
    ],
)
def test_to_int_invalid(value):
    with pytest.raises(ConversionError):
        _to_int(value)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0.91, 0.91),
        (12, 12.0),
        ("Infinity", math.inf),
        ("-Infinity", -math.inf),
        (None, None),
    ],
)
def test_to_float(value, expected):
    assert _to_float(value) == expected


def test_to_float_nan():
    actual = _to_float("NaN")
    assert isinstance(actual, float)
    assert math.isnan(actual)


@pytest.mark.parametrize("value", ["foo", "nan", "inf", False, [1.0]])
def test_to_float_invalid(value):
    with pytest.raises(ConversionError):
        _to_float(value)


def test_to_date():
    assert _to_date("2015-04-23") == date(2015, 4, 23)
    assert _to_date(None) is None
    with pytest.raises(ConversionError):
        _to_date("23/04/2015")
    with pytest.raises(ConversionError):
        _to_date(20150423)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (
            "2015-04-23 10:00:08.123",
            datetime(2015, 4, 23, 10, 0, 8, 123000, tzinfo=tzlocal()),
        ),
        (
            "2015-02-09 18:26:02.013",
            datetime(2015, 2, 9, 18, 26, 2, 13000, tzinfo=tzlocal()),
        ),
        (
            "2015-04-23 10:00:08.123456789",
            datetime(2015, 4, 23, 10, 0, 8, 123456, tzinfo=tzlocal()),
        ),
        (
            "2015-04-23 10:00:08",
            datetime(2015, 4, 23, 10, 0, 8, tzinfo=tzlocal()),
        ),
        (None, None),
    ],
)
def test_to_datetime(value, expected):
    assert _to_datetime(value) == expected


def test_to_datetime_is_local():
    actual = _to_datetime("2015-04-23 10:00:08.123")
    assert actual.tzinfo == tzlocal()
    assert (actual.hour, actual.minute, actual.second) == (10, 0, 8)


@pytest.mark.parametrize(
    "value",
    [
        1000.0,
        "foo",
        "Infinity",
        "NaN",
        "2015-04-23",
        "2015-04-23 10:00:08.",
        "2015-04-23 10:00:08.1x",
    ],
)
def test_to_datetime_invalid(value):
    with pytest.raises(ConversionError):
        _to_datetime(value)


class TestDatetimeWithTimezone:
    def test_utc(self):
        actual = _to_datetime_with_tz("2015-04-23 10:00:08.123 UTC")
        assert actual == datetime(2015, 4, 23, 10, 0, 8, 123000, tzinfo=UTC)
        assert actual.utcoffset() == timedelta(0)

    def test_named_zone(self):
        london = gettz("Europe/London")
        actual = _to_datetime_with_tz("2015-04-23 10:00:08.123 Europe/London")
        assert actual == datetime(2015, 4, 23, 10, 0, 8, 123000, tzinfo=london)
        assert actual.tzinfo is london
        # British Summer Time
        assert actual.utcoffset() == timedelta(hours=1)
        assert (actual.hour, actual.minute, actual.second) == (10, 0, 8)

    def test_without_zone_is_local(self):
        actual = _to_datetime_with_tz("2015-04-23 10:00:08.123")
        assert actual == datetime(2015, 4, 23, 10, 0, 8, 123000, tzinfo=tzlocal())

    def test_blank_zone_is_utc(self):
        actual = _to_datetime_with_tz("2015-04-23 10:00:08.123 ")
        assert actual == datetime(2015, 4, 23, 10, 0, 8, 123000, tzinfo=UTC)
        assert actual.utcoffset() == timedelta(0)

    @pytest.mark.parametrize("zone", ["utc", "Z"])
    def test_utc_aliases(self, zone):
        actual = _to_datetime_with_tz(f"2015-04-23 10:00:08.123 {zone}")
        assert actual == datetime(2015, 4, 23, 10, 0, 8, 123000, tzinfo=UTC)

    @pytest.mark.parametrize(
        ("zone", "offset"),
        [
            ("+05:00", timedelta(hours=5)),
            ("-08:30", -timedelta(hours=8, minutes=30)),
            ("+0100", timedelta(hours=1)),
        ],
    )
    def test_offset_zone(self, zone, offset):
        actual = _to_datetime_with_tz(f"2015-04-23 10:00:08.123 {zone}")
        assert actual.utcoffset() == offset
        assert (actual.hour, actual.minute, actual.second) == (10, 0, 8)

    def test_high_precision(self):
        actual = _to_datetime_with_tz("2015-04-23 10:00:08.123456789 UTC")
        assert actual == datetime(2015, 4, 23, 10, 0, 8, 123456, tzinfo=UTC)

    def test_none(self):
        assert _to_datetime_with_tz(None) is None

    @pytest.mark.parametrize(
        "value",
        [
            "2015-04-23 10:00:08.123 Nowhere",
            "2015-04-23 10:00:08.123 /etc/passwd",
            "2015-04-23 10:00:08.123 ../../../etc/passwd",
            "2015-04-23 10:00:08.123 +25:00",
            1000.0,
            "foo",
            "Infinity",
            "NaN",
            "2015-04-23 foo UTC",
        ],
    )
    def test_invalid(self, value):
        with pytest.raises(ConversionError):
            _to_datetime_with_tz(value)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (
            "AAAAAAAAAAAAAP//2V9/MQ==",
            bytes([0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 255, 255, 217, 95, 127, 49]),
        ),
        ("", b""),
        (None, None),
    ],
)
def test_to_binary(value, expected):
    assert _to_binary(value) == expected


@pytest.mark.parametrize("value", ["AAAAAAAAAAAAAP//2V9/MQ==InvalidBase64!", "abc", 1000.0])
def test_to_binary_invalid(value):
    with pytest.raises(ConversionError):
        _to_binary(value)


def test_to_map():
    assert _to_map({"testKey": "testVal"}) == {"testKey": "testVal"}
    assert _to_map({}) == {}
    assert _to_map(None) is None


@pytest.mark.parametrize("value", ["InvalidMap", {"a": 1}, ["a", "b"]])
def test_to_map_invalid(value):
    with pytest.raises(ConversionError):
        _to_map(value)


def test_to_array():
    assert _to_array(["testVal1", "testVal2"]) == ["testVal1", "testVal2"]
    assert _to_array([]) == []
    assert _to_array(None) is None


@pytest.mark.parametrize("value", [[1, 2], ["a", None], "InvalidArray", {"a": "b"}])
def test_to_array_invalid(value):
    with pytest.raises(ConversionError):
        _to_array(value)


class TestDefaultTypeConverter:
    def test_convert(self):
        converter = DefaultTypeConverter()
        assert converter.convert("bigint", 1000.0) == 1000
        assert converter.convert("varchar(10)", "abc") == "abc"
        assert converter.convert(ColumnType.DOUBLE, "Infinity") == math.inf
        assert converter.convert("boolean", None) is None

    def test_get_unsupported(self):
        converter = DefaultTypeConverter()
        with pytest.raises(UnsupportedType):
            converter.get("decimal(38,0)")

    def test_remove(self):
        converter = DefaultTypeConverter()
        converter.remove(ColumnType.VARBINARY)
        with pytest.raises(UnsupportedType):
            converter.get("varbinary")
        # Mappings are copied per instance.
        assert DefaultTypeConverter().get("varbinary") is _to_binary

    def test_set(self):
        converter = DefaultTypeConverter()
        converter.set(ColumnType.VARCHAR, lambda v: v.upper() if v else v)
        assert converter.convert("varchar", "abc") == "ABC"

    def test_update(self):
        converter = DefaultTypeConverter()
        converter.update({ColumnType.BIGINT: str, ColumnType.INTEGER: str})
        assert converter.convert("bigint", 1) == "1"
        assert converter.convert("integer", 2) == "2"

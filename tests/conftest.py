import pytest
import requests

from tests import HOST, PORT, StubPrestoAdapter


@pytest.fixture
def presto():
    return StubPrestoAdapter()


@pytest.fixture
def session(presto):
    session = requests.Session()
    session.mount("http://", presto)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def connection(session, request):
    import pypresto

    if not hasattr(request, "param"):
        setattr(request, "param", {})  # noqa: B010
    conn = pypresto.connect(
        host=HOST,
        port=PORT,
        catalog="tpch",
        schema="tiny",
        user="tester",
        session=session,
        **request.param,
    )
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def cursor(connection):
    with connection.cursor() as cursor:
        yield cursor


@pytest.fixture
def dict_cursor(connection):
    from pypresto.cursor import DictCursor

    with connection.cursor(DictCursor) as cursor:
        yield cursor

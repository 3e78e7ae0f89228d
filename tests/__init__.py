import json
from typing import Any

import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

HOST = "presto.test"
PORT = 8080
BASE_URL = f"http://{HOST}:{PORT}"
STATEMENT_URL = f"{BASE_URL}/v1/statement"


def query_url(query_id: str, token: int) -> str:
    return f"{BASE_URL}/v1/statement/{query_id}/{token}"


def varchar_column(name: str) -> dict[str, Any]:
    return {
        "name": name,
        "type": "varchar",
        "typeSignature": {"rawType": "varchar", "typeArguments": [], "literalArguments": []},
    }


def column(name: str, type_: str) -> dict[str, Any]:
    return {
        "name": name,
        "type": type_,
        "typeSignature": {"rawType": type_, "typeArguments": [], "literalArguments": []},
    }


def envelope(
    query_id: str = "abcd",
    next_uri: str | None = None,
    columns: list[dict[str, Any]] | None = None,
    data: list[list[Any]] | None = None,
    state: str = "RUNNING",
    error: dict[str, Any] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "id": query_id,
        "infoUri": f"{BASE_URL}/v1/query/{query_id}",
        "partialCancelUri": f"{BASE_URL}/v1/stage/{query_id}.0",
        "stats": {"state": state},
    }
    if next_uri is not None:
        body["nextUri"] = next_uri
    if columns is not None:
        body["columns"] = columns
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    return body


class StubPrestoAdapter(BaseAdapter):
    """Serves canned responses by (method, URL) and records every request."""

    def __init__(self) -> None:
        super().__init__()
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[requests.PreparedRequest] = []

    def add(self, method: str, url: str, body: Any, status: int = 200) -> None:
        self.routes[(method, url)] = (status, body)

    def submit(self, body: Any, status: int = 200) -> None:
        self.add("POST", STATEMENT_URL, body, status)

    def page(self, url: str, body: Any, status: int = 200) -> None:
        self.add("GET", url, body, status)

    def requests_to(self, method: str, url: str) -> list[requests.PreparedRequest]:
        return [r for r in self.requests if r.method == method and r.url == url]

    @property
    def get_count(self) -> int:
        return sum(1 for r in self.requests if r.method == "GET")

    def send(self, request, **kwargs):
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url), (404, "Not Found"))
        if isinstance(body, Exception):
            raise body
        response = requests.Response()
        response.status_code = status
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        if isinstance(body, str):
            response._content = body.encode("utf-8")
            response.headers = CaseInsensitiveDict({"Content-Type": "text/plain"})
        else:
            response._content = json.dumps(body).encode("utf-8")
            response.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
        return response

    def close(self) -> None:
        pass

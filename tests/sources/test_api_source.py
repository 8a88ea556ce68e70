from __future__ import annotations

import httpx
import pytest

from rowcursor.domain.cursor import CursorStatus, Window
from rowcursor.domain.error_codes import ErrorCode
from rowcursor.domain.exceptions import SourceError
from rowcursor.infra.http.api_client import ApiClient, ApiError
from rowcursor.usecases.query_executor import QueryExecutor

ITEMS = [{"id": i, "password": f"p{i}"} for i in range(7)]


def make_client(responder, retries: int = 0) -> ApiClient:
    return ApiClient(
        baseUrl="https://api.local",
        username="user",
        password="secret",
        retries=retries,
        retryBackoffSeconds=0,
        transport=httpx.MockTransport(responder),
    )


def paged_responder(requested: list[int]):
    def responder(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        rows = int(request.url.params["rows"])
        requested.append(page)
        chunk = ITEMS[(page - 1) * rows : page * rows]
        return httpx.Response(200, json={"items": chunk})

    return responder


def test_api_cursor_reads_pages_lazily():
    requested: list[int] = []
    client = make_client(paged_responder(requested))
    cursor = QueryExecutor().query_api(client, "/items", page_size=3, window=Window(offset=1, limit=3))

    rows = list(cursor)

    assert [row["id"] for row in rows] == [1, 2, 3]
    # offset+limit = 4 rows, the second page is needed, the third is not
    assert requested == [1, 2]
    assert cursor.status == CursorStatus.CONSUMED


def test_api_cursor_stops_on_short_page():
    requested: list[int] = []
    client = make_client(paged_responder(requested))
    cursor = QueryExecutor().query_api(client, "/items", page_size=3)
    assert len(list(cursor)) == 7
    assert requested == [1, 2, 3]


def test_api_cursor_owned_client_closed_on_release():
    client = make_client(paged_responder([]))
    cursor = QueryExecutor().query_api(client, "/items", page_size=3, owns_client=True)
    cursor.iterator().next()
    cursor.close()
    assert client.client.is_closed


def test_api_max_pages_exceeded_is_source_error():
    client = make_client(paged_responder([]))
    cursor = QueryExecutor().query_api(client, "/items", page_size=2, max_pages=1)
    with pytest.raises(SourceError) as excinfo:
        list(cursor)
    assert excinfo.value.code == ErrorCode.MAX_PAGES_EXCEEDED.value
    assert cursor.status == CursorStatus.CLOSED


def test_api_http_error_is_wrapped():
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not here")

    cursor = QueryExecutor().query_api(make_client(responder), "/missing", page_size=5)
    with pytest.raises(SourceError) as excinfo:
        cursor.iterator().has_next()
    cause = excinfo.value.__cause__
    assert isinstance(cause, ApiError)
    assert cause.status_code == 404
    assert cause.body_snippet == "not here"


def test_api_client_retries_server_errors():
    calls = {"count": 0}

    def responder(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=[{"id": 1}])

    client = make_client(responder, retries=3)
    assert client.getPage("/items", 1, 10) == [{"id": 1}]
    assert client.getRetryAttempts() == 2


def test_api_client_rejects_unexpected_payload():
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    with pytest.raises(ApiError) as excinfo:
        make_client(responder).getPage("/items", 1, 10)
    assert excinfo.value.code == ErrorCode.INVALID_ITEMS_FORMAT.value


def test_api_client_sends_basic_auth():
    seen: dict[str, str] = {}

    def responder(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization", "")
        return httpx.Response(200, json=[])

    make_client(responder).getPage("/items", 1, 10)
    assert seen["auth"].startswith("Basic ")


def test_api_unauthorized_code_survives_wrapping():
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="denied")

    cursor = QueryExecutor().query_api(make_client(responder), "/items", page_size=5)
    with pytest.raises(SourceError) as excinfo:
        list(cursor)
    assert excinfo.value.code == ErrorCode.UNAUTHORIZED.value
    assert excinfo.value.details == {"cause": "ApiError"}

from __future__ import annotations

import time

import httpx
import pytest

from nginx_plus_exporter.services.errors import FetchError
from nginx_plus_exporter.services.fetcher import StatusFetcher
from tests.conftest import SCRAPE_URI, TRICKLE_DELAY, json_fetcher, mock_fetcher


def test_fetch_returns_body() -> None:
    assert json_fetcher({"connections": {}}).fetch() == b'{"connections": {}}'


def test_fetch_issues_a_single_get_to_the_uri() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"{}")

    mock_fetcher(handler).fetch()
    assert len(seen) == 1
    assert seen[0].method == "GET"
    assert str(seen[0].url) == SCRAPE_URI


@pytest.mark.parametrize("status_code", [404, 500, 503])
def test_non_2xx_raises_with_status_code(status_code: int) -> None:
    with pytest.raises(FetchError) as excinfo:
        json_fetcher({}, status_code=status_code).fetch()
    assert excinfo.value.status_code == status_code
    assert excinfo.value.uri == SCRAPE_URI
    assert str(status_code) in str(excinfo.value)


def test_204_is_success() -> None:
    assert json_fetcher(b"", status_code=204).fetch() == b""


@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("connection refused"), httpx.ReadTimeout("timed out")],
)
def test_transport_errors_raise_fetch_error(error: httpx.TransportError) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise error

    with pytest.raises(FetchError) as excinfo:
        mock_fetcher(handler).fetch()
    assert excinfo.value.status_code is None
    assert excinfo.value.__cause__ is error


def test_fetcher_defaults() -> None:
    fetcher = StatusFetcher("https://nginx/status")
    assert fetcher.timeout == 2.0
    assert fetcher.verify is True


def test_redirect_is_followed_to_the_final_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/status":
            return httpx.Response(301, headers={"Location": "/status/"})
        return httpx.Response(200, content=b'{"connections": {"accepted": 1}}')

    assert mock_fetcher(handler).fetch() == b'{"connections": {"accepted": 1}}'


def test_redirect_to_an_error_reports_the_final_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/status":
            return httpx.Response(302, headers={"Location": "/gone"})
        return httpx.Response(404)

    with pytest.raises(FetchError) as excinfo:
        mock_fetcher(handler).fetch()
    assert excinfo.value.status_code == 404


def test_redirect_without_location_is_an_error() -> None:
    with pytest.raises(FetchError) as excinfo:
        json_fetcher({}, status_code=301).fetch()
    assert excinfo.value.status_code == 301


def test_slow_body_is_cut_off_at_the_timeout() -> None:
    def slow_body():
        for piece in (b'{"connections"', b': {"accepted"', b": 1}}"):
            yield piece
            time.sleep(TRICKLE_DELAY)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=slow_body())

    fetcher = StatusFetcher(SCRAPE_URI, timeout=0.5, transport=httpx.MockTransport(handler))
    start = time.monotonic()
    with pytest.raises(FetchError, match="timed out after 0.5s"):
        fetcher.fetch()
    assert time.monotonic() - start < 0.5 + 2 * TRICKLE_DELAY


def test_trickling_server_is_bounded_by_the_timeout(trickling_nginx: str) -> None:
    fetcher = StatusFetcher(trickling_nginx, timeout=0.5)
    start = time.monotonic()
    with pytest.raises(FetchError, match="timed out"):
        fetcher.fetch()
    # The whole body would take 4 * TRICKLE_DELAY = 1.6s.
    assert time.monotonic() - start < 0.5 + 2 * TRICKLE_DELAY


def test_trickling_server_within_the_timeout_succeeds(trickling_nginx: str) -> None:
    body = StatusFetcher(trickling_nginx, timeout=5.0).fetch()
    assert body.startswith(b'{"connections"')

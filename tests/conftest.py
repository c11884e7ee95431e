from __future__ import annotations

import json
import sys
import threading
import time
from collections.abc import Callable, Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import nginx_plus_exporter` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nginx_plus_exporter.core.config import Settings  # noqa: E402
from nginx_plus_exporter.main import create_app  # noqa: E402
from nginx_plus_exporter.services.fetcher import StatusFetcher  # noqa: E402

SCRAPE_URI = "http://nginx.test/status"

# ---------------------------------------------------------------------------
# Status payload fixtures
# ---------------------------------------------------------------------------

# One server zone, no upstreams, no `discarded` key (pre-v6 nginx).
SINGLE_ZONE_STATUS: dict[str, Any] = {
    "connections": {"accepted": 5, "dropped": 1, "active": 2, "idle": 3},
    "ssl": {"handshakes": 0, "handshakes_failed": 0, "session_reuses": 0},
    "requests": {"total": 100, "current": 1},
    "server_zones": {
        "site1": {
            "processing": 1,
            "requests": 10,
            "received": 500,
            "sent": 900,
            "responses": {
                "1xx": 0,
                "2xx": 9,
                "3xx": 1,
                "4xx": 0,
                "5xx": 0,
                "total": 10,
            },
        }
    },
    "upstreams": {},
}


def _peer(server: str, peer_id: int, requests: int, **extra: Any) -> dict[str, Any]:
    peer = {
        "id": peer_id,
        "server": server,
        "backup": False,
        "weight": 1,
        "state": "up",
        "active": 0,
        "keepalive": 2,
        "max_conns": 0,
        "requests": requests,
        "responses": {
            "1xx": 0,
            "2xx": requests - 2,
            "3xx": 0,
            "4xx": 1,
            "5xx": 1,
            "total": requests,
        },
        "sent": requests * 100,
        "received": requests * 1000,
        "fails": 1,
        "unavail": 0,
        "health_checks": {"checks": 12, "fails": 0, "unhealthy": 0, "last_passed": True},
        "downtime": 0,
        "downstart": 0,
        "selected": 1474287426000,
        "header_time": 3,
        "response_time": 4,
    }
    peer.update(extra)
    return peer


# Two server zones plus one upstream group with two peers.
FULL_STATUS: dict[str, Any] = {
    "version": 8,
    "nginx_version": "1.11.3",
    "connections": {"accepted": 4968119, "dropped": 0, "active": 5, "idle": 117},
    "ssl": {"handshakes": 79572, "handshakes_failed": 21025, "session_reuses": 15762},
    "requests": {"total": 10624511, "current": 4},
    "server_zones": {
        "hg.nginx.org": {
            "processing": 0,
            "requests": 175276,
            "responses": {
                "1xx": 0,
                "2xx": 162948,
                "3xx": 10117,
                "4xx": 2125,
                "5xx": 8,
                "total": 175198,
            },
            "discarded": 78,
            "received": 45745466,
            "sent": 5856934293,
        },
        "trac.nginx.org": {
            "processing": 3,
            "requests": 281486,
            "responses": {
                "1xx": 0,
                "2xx": 192748,
                "3xx": 61837,
                "4xx": 23104,
                "5xx": 134,
                "total": 277823,
            },
            "discarded": 3660,
            "received": 81211238,
            "sent": 4003826002,
        },
    },
    "upstreams": {
        "trac-backend": {
            "peers": [
                _peer("10.0.0.1:8080", 0, 100, downtime=5),
                _peer("10.0.0.2:8080", 1, 50, backup=True, state="unhealthy"),
            ],
            "keepalive": 0,
            "zombies": 0,
            "queue": {"size": 0, "max_size": 100, "overflows": 0},
        }
    },
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "listen_address": ":9913",
        "metrics_path": "/metrics",
        "namespace": "nginx",
        "scrape_uri": SCRAPE_URI,
        "insecure": True,
        "scrape_timeout": 2.0,
        "log_level": "info",
        "log_json": False,
    }
    values.update(overrides)
    return Settings(**values)


def mock_fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> StatusFetcher:
    """A StatusFetcher whose HTTP traffic is answered by ``handler``."""
    return StatusFetcher(SCRAPE_URI, transport=httpx.MockTransport(handler))


def json_fetcher(payload: Any, status_code: int = 200) -> StatusFetcher:
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=body)

    return mock_fetcher(handler)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def client(settings: Settings) -> TestClient:
    """App whose nginx answers with SINGLE_ZONE_STATUS."""
    return TestClient(create_app(settings, fetcher=json_fetcher(SINGLE_ZONE_STATUS)))


# ---------------------------------------------------------------------------
# A real, slow nginx on localhost
# ---------------------------------------------------------------------------

TRICKLE_CHUNKS = 5
TRICKLE_DELAY = 0.4


class _TricklingStatusHandler(BaseHTTPRequestHandler):
    """Sends SINGLE_ZONE_STATUS in TRICKLE_CHUNKS pieces, TRICKLE_DELAY apart."""

    def do_GET(self) -> None:
        body = json.dumps(SINGLE_ZONE_STATUS).encode()
        step = -(-len(body) // TRICKLE_CHUNKS)
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        try:
            for start in range(0, len(body), step):
                if start:
                    time.sleep(TRICKLE_DELAY)
                self.wfile.write(body[start : start + step])
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError):
            pass  # client gave up, which is what the timeout tests want

    def log_message(self, format: str, *args: Any) -> None:
        pass


@pytest.fixture
def trickling_nginx() -> Iterator[str]:
    """URI of a local status server whose body takes ~1.6s to arrive."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TricklingStatusHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    try:
        yield f"http://{host}:{port}/status"
    finally:
        server.shutdown()
        server.server_close()

"""Prometheus metrics endpoint.

Each GET runs exactly one collection cycle against nginx and renders the
result in the text exposition format:

  # HELP nginx_server_requests_total Client requests received
  # TYPE nginx_server_requests_total counter
  nginx_server_requests_total{server="site1"} 10.0

The registry rendered here holds only the nginx collector.  There are no
process_* or python_* series: everything on this page comes from nginx.

The path is configurable (--telemetry.endpoint), so the route is added by
build_metrics_router() rather than with a decorator.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest


def metrics(request: Request) -> Response:
    """Run one scrape cycle and expose the result.

    A plain ``def``: collection blocks on the nginx fetch, so FastAPI
    runs it in the threadpool and concurrent scrapes don't queue up
    behind each other.
    """
    return Response(
        content=generate_latest(request.app.state.registry),
        media_type=CONTENT_TYPE_LATEST,
    )


def build_metrics_router(metrics_path: str) -> APIRouter:
    router = APIRouter(tags=["observability"])
    router.add_api_route(
        metrics_path, metrics, methods=["GET"], include_in_schema=False
    )
    return router

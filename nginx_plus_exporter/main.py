from __future__ import annotations

import logging

from fastapi import FastAPI
from prometheus_client import CollectorRegistry

from nginx_plus_exporter.api.health import router as health_router
from nginx_plus_exporter.api.index import router as index_router
from nginx_plus_exporter.api.metrics_endpoint import build_metrics_router
from nginx_plus_exporter.core.config import VERSION, Settings, load_settings
from nginx_plus_exporter.core.metrics import build_catalog
from nginx_plus_exporter.middleware.request_context import RequestContextMiddleware
from nginx_plus_exporter.services.collector import NginxPlusCollector
from nginx_plus_exporter.services.fetcher import StatusFetcher

logger = logging.getLogger(__name__)


def build_registry(
    settings: Settings, fetcher: StatusFetcher | None = None
) -> CollectorRegistry:
    """A registry holding only the nginx collector.

    A dedicated registry rather than prometheus_client.REGISTRY: the
    default one ships process and platform collectors, and this
    exporter only reports what nginx reports.
    """
    if fetcher is None:
        fetcher = StatusFetcher(
            settings.scrape_uri,
            timeout=settings.scrape_timeout,
            verify=settings.verify_tls,
        )
    registry = CollectorRegistry()
    registry.register(NginxPlusCollector(build_catalog(settings.namespace), fetcher))
    return registry


def create_app(
    settings: Settings | None = None, *, fetcher: StatusFetcher | None = None
) -> FastAPI:
    """Build the exporter app.  ``fetcher`` is overridable for tests."""
    if settings is None:
        settings = load_settings()

    app = FastAPI(
        title="nginx-plus-exporter",
        version=VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.registry = build_registry(settings, fetcher)

    app.add_middleware(RequestContextMiddleware)

    app.include_router(index_router)
    app.include_router(health_router)
    app.include_router(build_metrics_router(settings.metrics_path))

    logger.info("Metrics endpoint: %s", settings.metrics_path)
    logger.info("Metrics namespace: %s", settings.namespace)
    logger.info(
        "Scraping information from: %s  timeout=%.1fs verify_tls=%s",
        settings.scrape_uri,
        settings.scrape_timeout,
        "on" if settings.verify_tls else "off",
    )
    return app

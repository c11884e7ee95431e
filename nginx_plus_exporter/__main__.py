"""Process entry point.

RUN:  python -m nginx_plus_exporter --nginx.scrape_uri http://nginx/status

Flags override the NGINX_EXPORTER_* / LOG_* environment variables; the
flag names follow the usual Prometheus exporter convention.
"""

from __future__ import annotations

import argparse
import logging
import platform
import sys

import uvicorn

from nginx_plus_exporter.core.config import VERSION, load_settings, override_settings
from nginx_plus_exporter.core.logging import setup_logging
from nginx_plus_exporter.main import create_app
from nginx_plus_exporter.middleware.request_context import install_request_id_filter

logger = logging.getLogger("nginx_plus_exporter")


def version_string() -> str:
    return f"nginx_plus_exporter, version {VERSION} (python {platform.python_version()})"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nginx-plus-exporter",
        description="Expose the nginx status JSON as Prometheus metrics.",
    )
    parser.add_argument(
        "--version", action="store_true", help="Print version information."
    )
    parser.add_argument(
        "--telemetry.address",
        dest="listen_address",
        help="Address on which to expose metrics (default :9913).",
    )
    parser.add_argument(
        "--telemetry.endpoint",
        dest="metrics_path",
        help="Path under which to expose metrics (default /metrics).",
    )
    parser.add_argument(
        "--metrics.namespace",
        dest="namespace",
        help="Prometheus metrics namespace (default nginx).",
    )
    parser.add_argument(
        "--nginx.scrape_uri",
        dest="scrape_uri",
        help="URI of the nginx status page (default http://localhost/status).",
    )
    parser.add_argument(
        "--nginx.timeout",
        dest="scrape_timeout",
        type=float,
        help="Timeout in seconds for fetching the status page (default 2).",
    )
    parser.add_argument(
        "--insecure",
        dest="insecure",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Ignore the server certificate when scraping over https (default on).",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        choices=("debug", "info", "warning", "error"),
        help="Log level (default info).",
    )
    parser.add_argument(
        "--log.json",
        dest="log_json",
        action="store_true",
        default=None,
        help="Emit JSON log lines.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.version:
        print(version_string())
        return 0

    try:
        settings = override_settings(
            load_settings(),
            listen_address=args.listen_address,
            metrics_path=args.metrics_path,
            namespace=args.namespace,
            scrape_uri=args.scrape_uri,
            scrape_timeout=args.scrape_timeout,
            insecure=args.insecure,
            log_level=args.log_level,
            log_json=args.log_json,
        )
    except ValueError as exc:
        print(f"nginx-plus-exporter: configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(settings.log_level, json_format=settings.log_json)
    install_request_id_filter()

    logger.info("Starting nginx plus exporter  version=%s", VERSION)
    app = create_app(settings)
    logger.info("Starting server at %s", settings.listen_address)

    # uvicorn exits the process itself if the address is already bound.
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        access_log=False,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

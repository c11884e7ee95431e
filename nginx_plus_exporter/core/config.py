from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from typing import Literal
from urllib.parse import urlsplit

LogLevel = Literal["debug", "info", "warning", "error"]

VERSION = "0.2.0"

_NAMESPACE_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    listen_address: str
    metrics_path: str
    namespace: str
    scrape_uri: str
    insecure: bool
    scrape_timeout: float
    log_level: LogLevel
    log_json: bool

    @property
    def host(self) -> str:
        host, _, _ = self.listen_address.rpartition(":")
        return host.strip("[]") or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.listen_address.rpartition(":")
        return int(port)

    @property
    def verify_tls(self) -> bool:
        return not self.insecure


def validate_settings(settings: Settings) -> Settings:
    """Check cross-field constraints; returns the settings unchanged."""
    _, sep, port_raw = settings.listen_address.rpartition(":")
    if not sep:
        raise ValueError(
            f"listen address must look like host:port or :port "
            f"(got {settings.listen_address!r})"
        )
    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(
            f"listen address port must be an integer (got {port_raw!r})"
        ) from None
    if not 0 < port < 65536:
        raise ValueError(f"listen address port out of range (got {port})")

    if not settings.metrics_path.startswith("/") or settings.metrics_path == "/":
        raise ValueError(
            f"metrics path must start with '/' and not be the root "
            f"(got {settings.metrics_path!r})"
        )

    if not _NAMESPACE_RE.match(settings.namespace):
        raise ValueError(
            f"metrics namespace must match [a-zA-Z_][a-zA-Z0-9_]* "
            f"(got {settings.namespace!r})"
        )

    parts = urlsplit(settings.scrape_uri)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(
            f"scrape URI must be an http(s) URL (got {settings.scrape_uri!r})"
        )

    if settings.scrape_timeout <= 0:
        raise ValueError(
            f"scrape timeout must be positive (got {settings.scrape_timeout!r})"
        )

    if settings.log_level not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {settings.log_level!r})"
        )

    return settings


def load_settings() -> Settings:
    timeout_raw = _getenv("NGINX_EXPORTER_SCRAPE_TIMEOUT", "2")
    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"NGINX_EXPORTER_SCRAPE_TIMEOUT must be a number (got {timeout_raw!r})"
        ) from None

    settings = Settings(  # type: ignore[arg-type]
        listen_address=_getenv("NGINX_EXPORTER_LISTEN_ADDRESS", ":9913"),
        metrics_path=_getenv("NGINX_EXPORTER_METRICS_PATH", "/metrics"),
        namespace=_getenv("NGINX_EXPORTER_NAMESPACE", "nginx"),
        scrape_uri=_getenv("NGINX_EXPORTER_SCRAPE_URI", "http://localhost/status"),
        insecure=_parse_bool(
            "NGINX_EXPORTER_INSECURE", _getenv("NGINX_EXPORTER_INSECURE", "true")
        ),
        scrape_timeout=timeout,
        log_level=_getenv("LOG_LEVEL", "info").lower(),
        log_json=_parse_bool("LOG_JSON", _getenv("LOG_JSON", "false")),
    )
    return validate_settings(settings)


def override_settings(settings: Settings, **changes: object) -> Settings:
    """Return a validated copy with command-line overrides applied.

    ``None`` values mean "flag not given" and leave the field alone.
    """
    given = {k: v for k, v in changes.items() if v is not None}
    if "log_level" in given:
        given["log_level"] = str(given["log_level"]).lower()
    return validate_settings(replace(settings, **given))  # type: ignore[arg-type]

"""The metric catalog: every metric this exporter can emit, declared once.

This module is the single inventory of what the exporter exposes.  The
collector looks descriptors up here by (group, metric) and never invents
a metric name of its own.

NAMING
-------
Every metric is named ``<namespace>_<group>_<metric>``:

    nginx_connections_accepted
    nginx_server_responses{server="site1",code="2xx"}
    nginx_upstream_requests{server="backend",upstream="10.0.0.1:80"}

That is the descriptor name.  On the wire prometheus_client adds
``_total`` to every counter, so the exposition reads
``nginx_connections_accepted_total``.  Dashboards built against
exporters that publish the bare name need their queries renamed; the
landing page says so too.

The namespace comes from configuration (default ``nginx``) so two
exporters feeding the same Prometheus can be told apart.

COUNTERS AND GAUGES
--------------------
nginx already keeps the running totals; we forward them verbatim on each
scrape.  "Counter" here only tells Prometheus the value never goes down
(so rate() is meaningful), it does not mean we count anything ourselves.

  counter: accepted connections, requests served, bytes sent, 2xx responses
  gauge:   active/idle connections, requests being processed right now

The catalog is immutable after build_catalog() returns and is shared by
every concurrent scrape without locking.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal

MetricKind = Literal["counter", "gauge"]

# Response classes in emission order; also the values of the `code` label.
RESPONSE_CLASSES = ("1xx", "2xx", "3xx", "4xx", "5xx")


@dataclass(frozen=True, slots=True)
class MetricDescriptor:
    """One metric stream: name, help text, type and label schema."""

    namespace: str
    group: str
    metric: str
    documentation: str
    kind: MetricKind
    labels: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return "_".join(part for part in (self.namespace, self.group, self.metric) if part)


def _freeze(descriptors: list[MetricDescriptor]) -> Mapping[str, MetricDescriptor]:
    return MappingProxyType({d.metric: d for d in descriptors})


@dataclass(frozen=True)
class MetricCatalog:
    """The five metric families, keyed by metric name within each group."""

    namespace: str
    connections: Mapping[str, MetricDescriptor] = field(repr=False)
    ssl: Mapping[str, MetricDescriptor] = field(repr=False)
    requests: Mapping[str, MetricDescriptor] = field(repr=False)
    server: Mapping[str, MetricDescriptor] = field(repr=False)
    upstream: Mapping[str, MetricDescriptor] = field(repr=False)

    def __iter__(self) -> Iterator[MetricDescriptor]:
        for group in (self.connections, self.ssl, self.requests, self.server, self.upstream):
            yield from group.values()

    def descriptors(self) -> list[MetricDescriptor]:
        return list(self)


def build_catalog(namespace: str = "nginx") -> MetricCatalog:
    def metric(
        group: str,
        name: str,
        documentation: str,
        kind: MetricKind,
        labels: tuple[str, ...] = (),
    ) -> MetricDescriptor:
        return MetricDescriptor(namespace, group, name, documentation, kind, labels)

    server = ("server",)
    server_code = ("server", "code")
    peer = ("server", "upstream")
    peer_code = ("server", "upstream", "code")

    return MetricCatalog(
        namespace=namespace,
        connections=_freeze(
            [
                metric("connections", "accepted", "Accepted client connections", "counter"),
                metric("connections", "dropped", "Dropped client connections", "counter"),
                metric("connections", "active", "Active client connections", "gauge"),
                metric("connections", "idle", "Idle client connections", "gauge"),
            ]
        ),
        ssl=_freeze(
            [
                metric("ssl", "handshakes", "Successful SSL handshakes", "counter"),
                metric("ssl", "handshakes_failed", "Failed SSL handshakes", "counter"),
                metric("ssl", "session_reuses", "SSL session reuses during handshakes", "counter"),
            ]
        ),
        requests=_freeze(
            [
                metric("requests", "total", "Total client requests", "counter"),
                metric("requests", "current", "Client requests in progress", "gauge"),
            ]
        ),
        server=_freeze(
            [
                metric("server", "processing", "Client requests being processed", "gauge", server),
                metric("server", "requests", "Client requests received", "counter", server),
                metric("server", "discarded", "Requests completed without a response", "counter", server),
                metric("server", "received", "Bytes received from clients", "counter", server),
                metric("server", "sent", "Bytes sent to clients", "counter", server),
                metric("server", "responses", "Responses sent to clients by status class", "counter", server_code),
            ]
        ),
        upstream=_freeze(
            [
                metric("upstream", "requests", "Client requests forwarded to the peer", "counter", peer),
                metric("upstream", "fails", "Unsuccessful attempts to reach the peer", "counter", peer),
                metric("upstream", "received", "Bytes received from the peer", "counter", peer),
                metric("upstream", "sent", "Bytes sent to the peer", "counter", peer),
                metric("upstream", "downtime", "Time the peer was unavailable, in milliseconds", "counter", peer),
                metric("upstream", "responses", "Responses received from the peer by status class", "counter", peer_code),
            ]
        ),
    )

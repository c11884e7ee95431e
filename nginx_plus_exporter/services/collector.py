"""The nginx collector: fetch → decode → map → emit, once per scrape.

HOW A CUSTOM COLLECTOR DIFFERS FROM Counter()/Gauge()
--------------------------------------------------------
Instrumented code usually owns its metrics: it creates a Counter at
import time and calls .inc() as things happen.  An exporter owns
nothing.  nginx keeps the numbers; we only read them when Prometheus
asks.  So instead of long-lived Counter objects, this module registers
a *collector*: an object whose collect() is called by
generate_latest() on every scrape and yields freshly built metric
families holding the values nginx reported a moment ago.

No state survives between scrapes.  Two concurrent scrapes run two
independent cycles and share only the immutable MetricCatalog.

FAILURE MODEL
--------------
If nginx is unreachable, answers non-2xx, or returns something that is
not a status document, collect() logs one ERROR line and yields
nothing.  The /metrics response is still a valid (empty) exposition.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from nginx_plus_exporter.core.metrics import MetricCatalog, MetricDescriptor
from nginx_plus_exporter.models.status import NginxStatus, Responses
from nginx_plus_exporter.services.decoder import decode_status
from nginx_plus_exporter.services.errors import ScrapeError
from nginx_plus_exporter.services.fetcher import StatusFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Sample:
    """One emitted value: which metric, its value, and its label values in order."""

    descriptor: MetricDescriptor
    value: float
    labels: tuple[str, ...] = ()


def _response_samples(
    descriptor: MetricDescriptor, responses: Responses, *labels: str
) -> Iterator[Sample]:
    for code, count in responses.by_class():
        yield Sample(descriptor, float(count), (*labels, code))


def emit_samples(status: NginxStatus, catalog: MetricCatalog) -> Iterator[Sample]:
    """Walk a snapshot and yield one Sample per exported leaf value.

    Order is fixed within each group: connections, ssl, then every server
    zone, then every peer of every upstream.  Zone order follows the
    payload.  ``requests.*`` is described by the catalog but not emitted.
    """
    conn = catalog.connections
    yield Sample(conn["accepted"], float(status.connections.accepted))
    yield Sample(conn["dropped"], float(status.connections.dropped))
    yield Sample(conn["active"], float(status.connections.active))
    yield Sample(conn["idle"], float(status.connections.idle))

    ssl = catalog.ssl
    yield Sample(ssl["handshakes"], float(status.ssl.handshakes))
    yield Sample(ssl["handshakes_failed"], float(status.ssl.handshakes_failed))
    yield Sample(ssl["session_reuses"], float(status.ssl.session_reuses))

    server = catalog.server
    for zone_name, zone in status.server_zones.items():
        labels = (zone_name,)
        yield Sample(server["processing"], float(zone.processing), labels)
        yield Sample(server["requests"], float(zone.requests), labels)
        yield Sample(server["discarded"], float(zone.discarded), labels)
        yield Sample(server["received"], float(zone.received), labels)
        yield Sample(server["sent"], float(zone.sent), labels)
        yield from _response_samples(server["responses"], zone.responses, zone_name)

    upstream = catalog.upstream
    for zone_name, zone in status.upstreams.items():
        for peer in zone.peers:
            labels = (zone_name, peer.server)
            yield Sample(upstream["requests"], float(peer.requests), labels)
            yield Sample(upstream["sent"], float(peer.sent), labels)
            yield Sample(upstream["received"], float(peer.received), labels)
            yield Sample(upstream["downtime"], float(peer.downtime), labels)
            yield Sample(upstream["fails"], float(peer.fails), labels)
            yield from _response_samples(
                upstream["responses"], peer.responses, zone_name, peer.server
            )


def metric_family(descriptor: MetricDescriptor) -> CounterMetricFamily | GaugeMetricFamily:
    """An empty metric family for ``descriptor``; samples are added by the caller."""
    family_cls = CounterMetricFamily if descriptor.kind == "counter" else GaugeMetricFamily
    return family_cls(descriptor.name, descriptor.documentation, labels=list(descriptor.labels))


def group_samples(
    samples: Iterable[Sample], catalog: MetricCatalog
) -> list[CounterMetricFamily | GaugeMetricFamily]:
    """Fold samples into one family per emitted descriptor, in catalog order."""
    families = {
        d.name: metric_family(d)
        for group in (catalog.connections, catalog.ssl, catalog.server, catalog.upstream)
        for d in group.values()
    }
    for sample in samples:
        families[sample.descriptor.name].add_metric(list(sample.labels), sample.value)
    return list(families.values())


class NginxPlusCollector(Collector):
    """prometheus_client collector running one scrape cycle per collect()."""

    def __init__(
        self,
        catalog: MetricCatalog,
        fetcher: StatusFetcher,
        *,
        decode: Callable[[bytes, str], NginxStatus] = decode_status,
    ) -> None:
        self.catalog = catalog
        self.fetcher = fetcher
        self._decode = decode

    def describe(self) -> Iterable[Metric]:
        # Registration calls this; it must never touch the network.
        return [metric_family(d) for d in self.catalog]

    def scrape(self) -> NginxStatus:
        """Fetch and decode one snapshot.  Raises ScrapeError."""
        raw = self.fetcher.fetch()
        return self._decode(raw, self.fetcher.uri)

    def collect(self) -> Iterable[Metric]:
        try:
            status = self.scrape()
        except ScrapeError as exc:
            status_code = getattr(exc, "status_code", None)
            logger.error(
                "nginx status scrape failed  uri=%s status=%s  %s",
                exc.uri,
                status_code or "-",
                exc,
                extra={
                    "scrape_uri": exc.uri,
                    "upstream_status": status_code,
                },
            )
            return []

        samples = list(emit_samples(status, self.catalog))
        logger.debug(
            "nginx status scraped  uri=%s samples=%d",
            self.fetcher.uri,
            len(samples),
            extra={"scrape_uri": self.fetcher.uri, "samples": len(samples)},
        )
        return group_samples(samples, self.catalog)

"""Pydantic models for the nginx status payload.

Only the shape matters here: unknown keys are ignored (newer nginx
releases keep adding fields) and anything missing, or explicitly null,
falls back to zero.  ``discarded`` for example only appeared in status
format version 6 and older servers simply omit it.  A null zone or peer
(`{"z": null}`, `[null]`) decodes as one with every counter at zero.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from nginx_plus_exporter.core.metrics import RESPONSE_CLASSES


class _StatusModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null behaves like an absent key: the field keeps its default.  A
        # null object (a zone, a peer, the whole document) is all zeros.
        if data is None:
            return {}
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Connections(_StatusModel):
    accepted: int = 0
    dropped: int = 0
    active: int = 0
    idle: int = 0


class SSL(_StatusModel):
    handshakes: int = 0
    handshakes_failed: int = 0
    session_reuses: int = 0


class Requests(_StatusModel):
    total: int = 0
    current: int = 0


class Responses(_StatusModel):
    responses_1xx: int = Field(default=0, alias="1xx")
    responses_2xx: int = Field(default=0, alias="2xx")
    responses_3xx: int = Field(default=0, alias="3xx")
    responses_4xx: int = Field(default=0, alias="4xx")
    responses_5xx: int = Field(default=0, alias="5xx")
    total: int = 0

    def by_class(self) -> list[tuple[str, int]]:
        """(code, count) pairs in 1xx..5xx order; ``total`` is not included."""
        return [(code, getattr(self, f"responses_{code}")) for code in RESPONSE_CLASSES]


class ServerZone(_StatusModel):
    processing: int = 0
    requests: int = 0
    responses: Responses = Field(default_factory=Responses)
    discarded: int = 0
    received: int = 0
    sent: int = 0


class HealthChecks(_StatusModel):
    checks: int = 0
    fails: int = 0
    unhealthy: int = 0
    last_passed: bool | None = None


class Peer(_StatusModel):
    id: int | None = None
    server: str = ""
    backup: bool = False
    weight: int = 0
    state: str = ""
    active: int = 0
    keepalive: int = 0
    max_conns: int = 0
    requests: int = 0
    responses: Responses = Field(default_factory=Responses)
    sent: int = 0
    received: int = 0
    fails: int = 0
    unavail: int = 0
    health_checks: HealthChecks = Field(default_factory=HealthChecks)
    downtime: int = 0
    downstart: int = 0
    selected: int = 0
    header_time: int = 0
    response_time: int = 0


class Queue(_StatusModel):
    size: int = 0
    max_size: int = 0
    overflows: int = 0


class UpstreamZone(_StatusModel):
    peers: list[Peer] = Field(default_factory=list)
    keepalive: int = 0
    zombies: int = 0
    queue: Queue = Field(default_factory=Queue)


class NginxStatus(_StatusModel):
    """One decoded status snapshot; lives for a single collection cycle."""

    connections: Connections = Field(default_factory=Connections)
    ssl: SSL = Field(default_factory=SSL)
    requests: Requests = Field(default_factory=Requests)
    server_zones: dict[str, ServerZone] = Field(default_factory=dict)
    upstreams: dict[str, UpstreamZone] = Field(default_factory=dict)

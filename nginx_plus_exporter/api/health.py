"""Liveness endpoint.

/health answers "is the exporter process up?", not "is nginx up?".  It
never contacts nginx: an nginx outage shows up as missing nginx_* series
on /metrics, and restarting the exporter would not fix it.
"""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}

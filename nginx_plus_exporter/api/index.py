from __future__ import annotations

import html

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["index"])

_LANDING_PAGE = """<html>
<head><title>Nginx Exporter</title></head>
<body>
<h1>Nginx Exporter</h1>
<p><a href="{metrics_path}">Metrics</a></p>
<p>Counter names end in <code>_total</code>, e.g.
<code>{namespace}_connections_accepted_total</code>.
Dashboards and alerts written for exporters that expose
<code>{namespace}_connections_accepted</code> need their queries renamed.</p>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(request: Request) -> HTMLResponse:
    """Landing page linking to the metrics path."""
    settings = request.app.state.settings
    return HTMLResponse(
        _LANDING_PAGE.format(
            metrics_path=html.escape(settings.metrics_path),
            namespace=html.escape(settings.namespace),
        )
    )

"""HTTP routes: Prometheus exposition, refresh health and a landing page."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from digitalocean_exporter.resources.buffer import RefreshBuffer
from digitalocean_exporter.resources.schemas import HealthReport, ResourceHealth

router = APIRouter()

_LANDING_PAGE = """<html>
<head><title>DigitalOcean Exporter</title></head>
<body>
<h1>DigitalOcean Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>"""


def get_refresh_buffer(request: Request) -> RefreshBuffer:
    buffer: RefreshBuffer | None = getattr(request.app.state, "refresh_buffer", None)
    if buffer is None:
        raise RuntimeError("Refresh buffer not configured on application state")
    return buffer


def get_registry(request: Request) -> CollectorRegistry:
    registry: CollectorRegistry | None = getattr(request.app.state, "registry", None)
    if registry is None:
        raise RuntimeError("Collector registry not configured on application state")
    return registry


def metrics_endpoint(registry: CollectorRegistry = Depends(get_registry)) -> Response:
    """Serialize every registered collector in Prometheus text format.

    Declared sync so FastAPI runs it in the worker thread pool; collection
    only reads buffered snapshots.
    """

    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)


def build_health_report(buffer: RefreshBuffer) -> HealthReport:
    resources = {
        kind.value: ResourceHealth(
            last_success=state.last_success,
            last_error=state.last_error,
            last_error_at=state.last_error_at,
            series=state.series,
        )
        for kind, state in buffer.status().items()
    }

    if any(entry.failing for entry in resources.values()):
        status = "degraded"
    elif any(entry.last_success is None for entry in resources.values()):
        status = "starting"
    else:
        status = "healthy"

    return HealthReport(
        status=status,
        refresh_id=buffer.refresh_id,
        refresh_interval_seconds=buffer.interval,
        resources=resources,
        counters=buffer.counters.snapshot(),
    )


@router.get("/health", tags=["system"], summary="Refresh health")
async def health_check(buffer: RefreshBuffer = Depends(get_refresh_buffer)) -> JSONResponse:
    """Report per-resource refresh freshness; always 200 so scrapes stay decoupled."""

    report = build_health_report(buffer)
    return JSONResponse({"ok": True, "data": report.model_dump(mode="json")})


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def landing_page(request: Request) -> HTMLResponse:
    metrics_path = request.app.state.settings.metrics_path
    return HTMLResponse(_LANDING_PAGE.format(metrics_path=metrics_path))

"""FastAPI application factory for the DigitalOcean exporter."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from prometheus_client import CollectorRegistry

from digitalocean_exporter import __version__
from digitalocean_exporter.config import Settings, get_settings
from digitalocean_exporter.lib.do_client import DigitalOceanClient
from digitalocean_exporter.lib.logger import configure_logging, get_logger
from digitalocean_exporter.resources.buffer import RefreshBuffer
from digitalocean_exporter.resources.collector import DigitalOceanCollector
from digitalocean_exporter.resources.lister import PaginatedLister
from digitalocean_exporter.resources.routes import metrics_endpoint, router
from digitalocean_exporter.resources.service import DigitalOceanService


logger = get_logger(__name__)


def create_app(settings: Settings | None = None, *, buffer: RefreshBuffer | None = None) -> FastAPI:
    """Wire client, buffer, collector and routes into one application.

    Passing `buffer` skips building the API client, which tests use to serve
    hand-fed snapshots.
    """

    settings = settings or get_settings()
    configure_logging(debug=settings.debug)

    client: DigitalOceanClient | None = None
    if buffer is None:
        client = DigitalOceanClient(
            settings.digitalocean_token,
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
        )
        buffer = RefreshBuffer(
            PaginatedLister(client),
            interval=settings.refresh_interval_seconds,
            droplet_detail=settings.droplet_detail,
        )

    registry = CollectorRegistry()
    collector = DigitalOceanCollector(
        DigitalOceanService(buffer),
        namespace=settings.metrics_namespace,
        droplet_detail=buffer.droplet_detail,
    )
    registry.register(collector)

    refresh_buffer = buffer

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "exporter.start",
            extra={
                "listen_address": settings.listen_address,
                "metrics_path": settings.metrics_path,
                "refresh_interval_seconds": refresh_buffer.interval,
            },
        )
        await refresh_buffer.start()
        try:
            yield
        finally:
            await refresh_buffer.stop()
            if client is not None:
                await client.close()
            logger.info("exporter.stop")

    app = FastAPI(title="DigitalOcean Exporter", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.refresh_buffer = refresh_buffer
    app.state.registry = registry
    app.state.collector = collector

    app.include_router(router)
    app.add_api_route(
        settings.metrics_path,
        metrics_endpoint,
        methods=["GET"],
        tags=["system"],
        summary="Prometheus metrics",
    )
    return app

"""Command-line entrypoint: parse flags, build the app and serve it with uvicorn."""

from __future__ import annotations

from typing import Any

import click
import uvicorn
from pydantic import ValidationError

from digitalocean_exporter import __version__
from digitalocean_exporter.config import Settings
from digitalocean_exporter.main import create_app


def build_settings(**overrides: Any) -> Settings:
    """Merge explicitly given flags over environment-sourced settings."""

    fields = Settings.model_fields
    values = {
        fields[key].alias or key: value for key, value in overrides.items() if value is not None
    }
    try:
        return Settings(**values)  # type: ignore[arg-type]
    except ValidationError as exc:
        invalid = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        if invalid & {"digitalocean_token", "DIGITALOCEAN_TOKEN"}:
            raise click.UsageError(
                "A DigitalOcean API token must be specified with '--token' or DIGITALOCEAN_TOKEN"
            ) from exc
        raise click.UsageError(str(exc)) from exc


@click.command(name="digitalocean-exporter")
@click.option("--token", "digitalocean_token", help="DigitalOcean API token (read-only)")
@click.option("--listen", "listen_address", help="Listen address, host:port (default localhost:9292)")
@click.option("--metrics-path", "metrics_path", help="URL path for surfacing metrics (default /metrics)")
@click.option(
    "--refresh-interval",
    "refresh_interval_seconds",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds between refresh cycles (default 60)",
)
@click.option(
    "--droplet-detail",
    "droplet_detail",
    type=click.Choice(["basic", "price", "full"]),
    help="Droplet label granularity",
)
@click.option("--debug", "debug", is_flag=True, default=None, help="Print debug logs")
@click.version_option(__version__, "-v", "--version", prog_name="digitalocean_exporter")
def main(**options: Any) -> None:
    """Serve DigitalOcean resource counts for Prometheus."""

    settings = build_settings(**options)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.listen_host,
        port=settings.listen_port,
        log_config=None,
        access_log=settings.debug,
    )

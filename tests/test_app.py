"""HTTP surface and command-line tests."""

from __future__ import annotations

import httpx
import pytest
from click.testing import CliRunner
from httpx import AsyncClient

from digitalocean_exporter import __version__
from digitalocean_exporter.cli import build_settings, main
from digitalocean_exporter.config import Settings
from digitalocean_exporter.lib.do_client import TransportError
from digitalocean_exporter.main import create_app
from digitalocean_exporter.resources.schemas import ResourceKind


@pytest.mark.asyncio
async def test_metrics_endpoint_serves_exposition(stub_lister, buffer, async_client: AsyncClient) -> None:
    stub_lister.set_records(
        ResourceKind.VOLUMES, {"droplet_ids": [7], "size_gigabytes": 100, "region": {"slug": "nyc3"}}
    )
    await buffer.refresh()

    response = await async_client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert 'digitalocean_volumes_count{region="nyc3",size="100",status="attached"} 1.0' in response.text


@pytest.mark.asyncio
async def test_metrics_endpoint_before_refresh_is_not_an_error(async_client: AsyncClient) -> None:
    response = await async_client.get("/metrics")

    assert response.status_code == 200
    assert "# TYPE digitalocean_droplets_count gauge" in response.text
    assert "digitalocean_droplets_count{" not in response.text


@pytest.mark.asyncio
async def test_metrics_survive_api_outage(stub_lister, buffer, async_client: AsyncClient) -> None:
    """A failing refresh should leave the last good counts on the scrape path."""

    stub_lister.set_records(ResourceKind.TAGS, {"name": "web", "resources": {"droplets": {"count": 2}}})
    await buffer.refresh()
    for kind in ResourceKind:
        stub_lister.errors[kind] = TransportError("unavailable", resource=kind.value, status=503)
    await buffer.refresh()

    response = await async_client.get("/metrics")

    assert response.status_code == 200
    assert 'digitalocean_tags_count{name="web",resource_type="droplets"} 2.0' in response.text


@pytest.mark.asyncio
async def test_health_reports_starting_then_healthy(stub_lister, buffer, async_client: AsyncClient) -> None:
    starting = await async_client.get("/health")
    assert starting.status_code == 200
    assert starting.json()["ok"] is True
    assert starting.json()["data"]["status"] == "starting"
    assert starting.json()["data"]["refresh_id"] is None

    report = await buffer.refresh()
    healthy = (await async_client.get("/health")).json()["data"]

    assert healthy["status"] == "healthy"
    assert healthy["refresh_id"] == report.refresh_id
    assert healthy["refresh_interval_seconds"] == 60
    assert set(healthy["resources"]) == {kind.value for kind in ResourceKind}
    assert healthy["resources"]["droplets"]["last_success"] is not None
    assert healthy["counters"]["refresh.cycle"] == 1


@pytest.mark.asyncio
async def test_health_reports_degraded_resource(stub_lister, buffer, async_client: AsyncClient) -> None:
    await buffer.refresh()
    stub_lister.errors[ResourceKind.VOLUMES] = TransportError("rate limited", resource="volumes", status=429)
    await buffer.refresh()

    data = (await async_client.get("/health")).json()["data"]

    assert data["status"] == "degraded"
    assert data["resources"]["volumes"]["last_error"] == "rate limited"
    assert data["resources"]["droplets"]["last_error"] is None
    assert data["counters"]["refresh.volumes.error"] == 1


@pytest.mark.asyncio
async def test_landing_page_links_metrics(async_client: AsyncClient) -> None:
    response = await async_client.get("/")

    assert response.status_code == 200
    assert "DigitalOcean Exporter" in response.text
    assert "href='/metrics'" in response.text


@pytest.mark.asyncio
async def test_custom_metrics_path(buffer) -> None:
    settings = Settings(DIGITALOCEAN_TOKEN="test-token", METRICS_PATH="do-metrics")  # type: ignore[call-arg]
    app = create_app(settings, buffer=buffer)

    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        assert (await client.get("/do-metrics")).status_code == 200
        assert (await client.get("/metrics")).status_code == 404
        assert "href='/do-metrics'" in (await client.get("/")).text


def test_settings_defaults() -> None:
    settings = Settings(DIGITALOCEAN_TOKEN="abc")  # type: ignore[call-arg]

    assert settings.listen_host == "localhost"
    assert settings.listen_port == 9292
    assert settings.metrics_path == "/metrics"
    assert settings.refresh_interval_seconds == 60
    assert settings.droplet_detail == "basic"


def test_settings_reject_bad_listen_address() -> None:
    with pytest.raises(ValueError):
        Settings(DIGITALOCEAN_TOKEN="abc", LISTEN_ADDRESS="localhost")  # type: ignore[call-arg]


@pytest.mark.parametrize("path", ["/", "health", "/health"])
def test_settings_reject_metrics_path_served_elsewhere(path: str) -> None:
    with pytest.raises(ValueError, match="already served"):
        Settings(DIGITALOCEAN_TOKEN="abc", METRICS_PATH=path)  # type: ignore[call-arg]


def test_flags_override_environment(monkeypatch) -> None:
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "30")

    settings = build_settings(
        digitalocean_token="flag-token",
        listen_address="0.0.0.0:9100",
        metrics_path=None,
        refresh_interval_seconds=None,
        droplet_detail="full",
        debug=None,
    )

    assert settings.digitalocean_token == "flag-token"
    assert settings.listen_port == 9100
    assert settings.refresh_interval_seconds == 30
    assert settings.droplet_detail == "full"


def test_cli_requires_token(monkeypatch) -> None:
    monkeypatch.delenv("DIGITALOCEAN_TOKEN", raising=False)

    result = CliRunner().invoke(main, [])

    assert result.exit_code == 2
    assert "API token must be specified" in result.output


def test_cli_version() -> None:
    result = CliRunner().invoke(main, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output

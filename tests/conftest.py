"""Pytest fixtures for DigitalOcean exporter tests."""

from collections.abc import AsyncIterator
import os
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient

os.environ.setdefault("DIGITALOCEAN_TOKEN", "test-token")

from digitalocean_exporter.config import Settings
from digitalocean_exporter.lib.do_client import DigitalOceanClient
from digitalocean_exporter.main import create_app
from digitalocean_exporter.resources.buffer import RefreshBuffer
from digitalocean_exporter.resources.schemas import RECORD_MODELS, ResourceKind


class FakeDigitalOceanAPI:
    """Serve canned `/v2/<resource>` pages through `httpx.MockTransport`."""

    def __init__(self) -> None:
        self.pages: dict[str, list[list[dict[str, Any]]]] = {}
        self.failures: dict[tuple[str, int], httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def set_pages(self, kind: ResourceKind, *pages: list[dict[str, Any]]) -> None:
        self.pages[kind.value] = [list(page) for page in pages]

    def fail(self, kind: ResourceKind, page: int = 1, status: int = 500, message: str = "boom") -> None:
        self.failures[(kind.value, page)] = httpx.Response(
            status, json={"id": "server_error", "message": message}
        )

    def clear_failures(self) -> None:
        self.failures.clear()

    def requests_for(self, kind: ResourceKind) -> list[httpx.Request]:
        return [req for req in self.requests if req.url.path == kind.path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        resource = request.url.path.removeprefix("/v2/")
        page = int(request.url.params.get("page", "1"))

        failure = self.failures.get((resource, page))
        if failure is not None:
            return failure

        pages = self.pages.get(resource) or [[]]
        body: dict[str, Any] = {
            resource: pages[page - 1],
            "links": {},
            "meta": {"total": sum(len(p) for p in pages)},
        }
        if page < len(pages):
            body["links"] = {
                "pages": {
                    "next": f"https://api.digitalocean.com/v2/{resource}?page={page + 1}&per_page=200",
                    "last": f"https://api.digitalocean.com/v2/{resource}?page={len(pages)}&per_page=200",
                }
            }
        return httpx.Response(200, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class StubLister:
    """In-memory lister returning decoded records or raising configured errors."""

    def __init__(self) -> None:
        self.records: dict[ResourceKind, list] = {}
        self.errors: dict[ResourceKind, Exception] = {}
        self.calls: list[ResourceKind] = []

    def set_records(self, kind: ResourceKind, *items: dict[str, Any]) -> None:
        model = RECORD_MODELS[kind]
        self.records[kind] = [model.model_validate(item) for item in items]

    async def list(self, kind: ResourceKind) -> list:
        self.calls.append(kind)
        error = self.errors.get(kind)
        if error is not None:
            raise error
        return list(self.records.get(kind, []))


@pytest.fixture()
def fake_api() -> FakeDigitalOceanAPI:
    return FakeDigitalOceanAPI()


@pytest_asyncio.fixture()
async def do_client(fake_api: FakeDigitalOceanAPI) -> AsyncIterator[DigitalOceanClient]:
    """Provide a client whose requests are answered by `fake_api`."""
    client = DigitalOceanClient("test-token", transport=fake_api.transport())
    yield client
    await client.close()


@pytest.fixture()
def stub_lister() -> StubLister:
    return StubLister()


@pytest.fixture()
def buffer(stub_lister: StubLister) -> RefreshBuffer:
    return RefreshBuffer(stub_lister, interval=60)


@pytest.fixture()
def settings() -> Settings:
    return Settings(DIGITALOCEAN_TOKEN="test-token")  # type: ignore[call-arg]


@pytest.fixture()
def app(settings: Settings, buffer: RefreshBuffer) -> FastAPI:
    """Return an application serving the stub-fed buffer; lifespan is not run."""
    return create_app(settings, buffer=buffer)


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an `httpx.AsyncClient` bound to the FastAPI app."""
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        yield client

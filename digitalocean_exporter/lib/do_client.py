"""DigitalOcean API v2 client for the resource list endpoints."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any

import httpx

from digitalocean_exporter import __version__
from digitalocean_exporter.lib.logger import get_logger
from digitalocean_exporter.resources.schemas import ResourceKind

DEFAULT_API_BASE = "https://api.digitalocean.com"
USER_AGENT = f"digitalocean_exporter/{__version__}"


logger = get_logger(__name__)


class TransportError(RuntimeError):
    """Raised when a list request fails or returns an unusable payload."""

    def __init__(self, message: str, *, resource: str, status: int | None = None) -> None:
        super().__init__(message)
        self.resource = resource
        self.status = status


@dataclass(frozen=True)
class ResourcePage:
    """One page of raw records plus whether the API advertises another page."""

    records: list[dict[str, Any]]
    has_next: bool


class DigitalOceanClient(AbstractAsyncContextManager["DigitalOceanClient"]):
    """Authenticated async wrapper around `GET /v2/<resource>`."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
        )

    async def __aenter__(self) -> "DigitalOceanClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def list_page(self, kind: ResourceKind, page: int, per_page: int) -> ResourcePage:
        """Fetch a single page of `kind`.

        Raises `TransportError` for HTTP errors, network failures and payloads
        that are not shaped like a list response.
        """

        params = {"page": page, "per_page": per_page}
        logger.debug(
            "digitalocean.list.request",
            extra={"resource": kind.value, "page": page, "per_page": per_page},
        )
        try:
            response = await self._client.get(kind.path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            try:
                detail_json = exc.response.json()
                detail = detail_json.get("message") if isinstance(detail_json, dict) else detail_json
            except ValueError:
                detail = exc.response.text
            detail_display = detail[:200] if isinstance(detail, str) else str(detail)
            logger.warning(
                "digitalocean.list.http_error",
                extra={"resource": kind.value, "page": page, "status": status, "detail": detail_display},
            )
            raise TransportError(
                f"DigitalOcean {kind.value} request failed ({status}): {detail_display}",
                resource=kind.value,
                status=status,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "digitalocean.list.network_error",
                extra={"resource": kind.value, "page": page, "error": repr(exc)},
            )
            raise TransportError(
                f"DigitalOcean {kind.value} request failed (network)", resource=kind.value
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Invalid JSON returned for {kind.value}", resource=kind.value
            ) from exc

        if not isinstance(data, dict):
            raise TransportError(f"Unexpected {kind.value} response shape", resource=kind.value)

        records = data.get(kind.value)
        if not isinstance(records, list):
            raise TransportError(
                f"Response for {kind.value} is missing the '{kind.value}' list", resource=kind.value
            )

        return ResourcePage(records=records, has_next=_has_next_page(data))


def _has_next_page(data: dict[str, Any]) -> bool:
    links = data.get("links")
    if not isinstance(links, dict):
        return False
    pages = links.get("pages")
    if not isinstance(pages, dict):
        return False
    return bool(pages.get("next"))

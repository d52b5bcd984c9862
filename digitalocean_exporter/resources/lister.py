"""Follow DigitalOcean pagination to produce one resource kind's full list."""

from __future__ import annotations

from typing import Protocol

from pydantic import ValidationError

from digitalocean_exporter.lib.do_client import ResourcePage, TransportError
from digitalocean_exporter.lib.logger import get_logger
from digitalocean_exporter.resources.schemas import RECORD_MODELS, ResourceKind

PER_PAGE = 200


logger = get_logger(__name__)


class PageSource(Protocol):
    async def list_page(self, kind: ResourceKind, page: int, per_page: int) -> ResourcePage: ...


class PaginatedLister:
    """Fetch every page of a resource kind and decode the records."""

    def __init__(self, source: PageSource, *, per_page: int = PER_PAGE) -> None:
        self._source = source
        self._per_page = per_page

    async def list(self, kind: ResourceKind) -> list:
        """Return all current records of `kind` in API order.

        Any failing page aborts the whole listing with `TransportError`; no
        partial list is ever returned.
        """

        model = RECORD_MODELS[kind]
        raw: list[dict] = []
        page = 1
        while True:
            result = await self._source.list_page(kind, page, self._per_page)
            raw.extend(result.records)
            if not result.has_next:
                break
            page += 1

        try:
            records = [model.model_validate(item) for item in raw]
        except ValidationError as exc:
            raise TransportError(
                f"Invalid {kind.value} record: {exc.errors()[0].get('msg', 'validation error')}",
                resource=kind.value,
            ) from exc

        logger.debug(
            "digitalocean.list.complete",
            extra={"resource": kind.value, "pages": page, "count": len(records)},
        )
        return records

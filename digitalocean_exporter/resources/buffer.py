"""Background refresh buffer holding the latest grouped counts per resource kind."""

from __future__ import annotations

import asyncio
import dataclasses
import secrets
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Iterable, Mapping, Protocol

from digitalocean_exporter.lib.do_client import TransportError
from digitalocean_exporter.lib.logger import get_logger
from digitalocean_exporter.lib.metrics import MetricsRegistry
from digitalocean_exporter.resources.aggregator import aggregate
from digitalocean_exporter.resources.schemas import DropletDetail, GroupingKey, ResourceKind

DEFAULT_REFRESH_INTERVAL = 60.0


logger = get_logger(__name__)

Snapshot = Mapping[GroupingKey, int]

_EMPTY: Snapshot = MappingProxyType({})


class Lister(Protocol):
    async def list(self, kind: ResourceKind) -> list: ...


@dataclass
class ResourceStatus:
    """Outcome of the most recent refresh attempts for one resource kind."""

    last_success: datetime | None = None
    last_error: str | None = None
    last_error_at: datetime | None = None
    series: int = 0


@dataclass(frozen=True)
class RefreshReport:
    refresh_id: str
    succeeded: tuple[ResourceKind, ...] = ()
    failed: dict[ResourceKind, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class RefreshBuffer:
    """Own the current snapshot of every resource kind and keep it refreshed.

    The refresh loop is the only writer. Listing and aggregation run without
    holding the lock; the lock only guards swapping in a finished mapping, so
    readers on any thread either see the previous mapping or the new one.
    A kind whose refresh fails keeps serving its previous snapshot.
    """

    def __init__(
        self,
        lister: Lister,
        *,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        droplet_detail: DropletDetail = "basic",
        kinds: Iterable[ResourceKind] = tuple(ResourceKind),
        counters: MetricsRegistry | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("refresh interval must be positive")
        self._lister = lister
        self.interval = interval
        self.droplet_detail: DropletDetail = droplet_detail
        self._kinds = tuple(kinds)
        self.counters = counters if counters is not None else MetricsRegistry()

        self._lock = threading.Lock()
        self._snapshots: dict[ResourceKind, Snapshot] = {kind: _EMPTY for kind in self._kinds}
        self._status: dict[ResourceKind, ResourceStatus] = {kind: ResourceStatus() for kind in self._kinds}
        self._refresh_id: str | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def kinds(self) -> tuple[ResourceKind, ...]:
        return self._kinds

    @property
    def refresh_id(self) -> str | None:
        with self._lock:
            return self._refresh_id

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self, kind: ResourceKind) -> Snapshot:
        """Return the mapping current at call time; it is never mutated afterwards."""

        with self._lock:
            return self._snapshots.get(kind, _EMPTY)

    def status(self) -> dict[ResourceKind, ResourceStatus]:
        with self._lock:
            return {kind: dataclasses.replace(state) for kind, state in self._status.items()}

    async def refresh(self) -> RefreshReport:
        """Run one refresh cycle over every kind, sequentially."""

        refresh_id = secrets.token_hex(8)
        with self._lock:
            self._refresh_id = refresh_id
        self.counters.increment("refresh.cycle")
        cycle_started = time.monotonic()
        logger.info("refresh.cycle.start", extra={"refresh_id": refresh_id})

        succeeded: list[ResourceKind] = []
        failed: dict[ResourceKind, str] = {}
        for kind in self._kinds:
            started = time.monotonic()
            try:
                records = await self._lister.list(kind)
                counts = aggregate(kind, records, droplet_detail=self.droplet_detail)
            except TransportError as exc:
                self._record_failure(kind, str(exc))
                failed[kind] = str(exc)
                logger.warning(
                    "refresh.resource.error",
                    extra={
                        "refresh_id": refresh_id,
                        "resource": kind.value,
                        "status": exc.status,
                        "error": str(exc),
                    },
                )
                continue
            except Exception as exc:
                self._record_failure(kind, repr(exc))
                failed[kind] = repr(exc)
                logger.exception(
                    "refresh.resource.error",
                    extra={"refresh_id": refresh_id, "resource": kind.value, "error": repr(exc)},
                )
                continue

            self._publish(kind, counts)
            succeeded.append(kind)
            logger.debug(
                "refresh.resource.success",
                extra={
                    "refresh_id": refresh_id,
                    "resource": kind.value,
                    "count": len(records),
                    "series": len(counts),
                    "duration_ms": round((time.monotonic() - started) * 1000, 1),
                },
            )

        logger.info(
            "refresh.cycle.complete",
            extra={
                "refresh_id": refresh_id,
                "succeeded": [kind.value for kind in succeeded],
                "failed": [kind.value for kind in failed],
                "duration_ms": round((time.monotonic() - cycle_started) * 1000, 1),
            },
        )
        return RefreshReport(refresh_id=refresh_id, succeeded=tuple(succeeded), failed=failed)

    async def start(self) -> None:
        """Spawn the background loop; the first cycle runs immediately."""

        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="digitalocean-refresh")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception:
                logger.exception("refresh.cycle.failed", extra={"refresh_id": self.refresh_id})
            await asyncio.sleep(self.interval)

    def _publish(self, kind: ResourceKind, counts: dict[GroupingKey, int]) -> None:
        snapshot: Snapshot = MappingProxyType(counts)
        now = datetime.now(tz=UTC)
        with self._lock:
            self._snapshots[kind] = snapshot
            state = self._status[kind]
            state.last_success = now
            state.series = len(counts)
        self.counters.increment(f"refresh.{kind.value}.success")

    def _record_failure(self, kind: ResourceKind, error: str) -> None:
        now = datetime.now(tz=UTC)
        with self._lock:
            state = self._status[kind]
            state.last_error = error
            state.last_error_at = now
        self.counters.increment(f"refresh.{kind.value}.error")

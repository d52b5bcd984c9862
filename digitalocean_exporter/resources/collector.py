"""Prometheus collector translating buffered snapshots into gauge families.

Registered on a ``CollectorRegistry``; ``generate_latest`` calls ``collect``
on every scrape, which only reads already-resident snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from digitalocean_exporter.resources.schemas import DropletDetail, ResourceKind
from digitalocean_exporter.resources.service import DigitalOceanService

DEFAULT_NAMESPACE = "digitalocean"

_DROPLET_LABELS: dict[str, tuple[str, ...]] = {
    "basic": ("region", "size", "status"),
    "price": ("region", "size", "status", "price_hourly", "price_monthly"),
    "full": ("region", "size", "status", "price_hourly", "price_monthly", "tags"),
}


@dataclass(frozen=True)
class SeriesSpec:
    kind: ResourceKind
    name: str
    documentation: str
    labels: tuple[str, ...]


def build_series(namespace: str = DEFAULT_NAMESPACE, droplet_detail: DropletDetail = "basic") -> tuple[SeriesSpec, ...]:
    prefix = f"{namespace}_" if namespace else ""
    return (
        SeriesSpec(
            ResourceKind.DROPLETS,
            f"{prefix}droplets_count",
            "Number of Droplets by region, size, and status.",
            _DROPLET_LABELS[droplet_detail],
        ),
        SeriesSpec(
            ResourceKind.FLOATING_IPS,
            f"{prefix}floating_ips_count",
            "Number of Floating IPs by region and status.",
            ("region", "status"),
        ),
        SeriesSpec(
            ResourceKind.LOAD_BALANCERS,
            f"{prefix}load_balancers_count",
            "Number of Load Balancers by region and status.",
            ("region", "status"),
        ),
        SeriesSpec(
            ResourceKind.TAGS,
            f"{prefix}tags_count",
            "Number of tagged resources by tag name and resource type.",
            ("name", "resource_type"),
        ),
        SeriesSpec(
            ResourceKind.VOLUMES,
            f"{prefix}volumes_count",
            "Number of Volumes by region, size in GiB, and status.",
            ("region", "size", "status"),
        ),
    )


class DigitalOceanCollector(Collector):
    """Emit one gauge sample per grouping key of each resource kind."""

    def __init__(
        self,
        service: DigitalOceanService,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        droplet_detail: DropletDetail = "basic",
    ) -> None:
        self._series = build_series(namespace, droplet_detail)
        self._readers: dict[ResourceKind, Callable[[], Mapping]] = {
            ResourceKind.DROPLETS: service.droplets,
            ResourceKind.FLOATING_IPS: service.floating_ips,
            ResourceKind.LOAD_BALANCERS: service.load_balancers,
            ResourceKind.TAGS: service.tags,
            ResourceKind.VOLUMES: service.volumes,
        }

    @property
    def series(self) -> tuple[SeriesSpec, ...]:
        return self._series

    def describe(self) -> Iterable[GaugeMetricFamily]:
        return [
            GaugeMetricFamily(spec.name, spec.documentation, labels=list(spec.labels))
            for spec in self._series
        ]

    def collect(self) -> Iterable[GaugeMetricFamily]:
        for spec in self._series:
            # One read per kind so every sample comes from the same snapshot.
            snapshot = self._readers[spec.kind]()
            family = GaugeMetricFamily(spec.name, spec.documentation, labels=list(spec.labels))
            for key, count in snapshot.items():
                family.add_metric([getattr(key, label) for label in spec.labels], float(count))
            yield family

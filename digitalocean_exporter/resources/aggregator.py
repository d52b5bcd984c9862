"""Reduce full resource listings into grouping-key counts."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Iterable, Mapping

from digitalocean_exporter.resources.schemas import (
    Droplet,
    DropletDetail,
    DropletKey,
    FloatingIP,
    FloatingIPKey,
    GroupingKey,
    LoadBalancer,
    LoadBalancerKey,
    ResourceKind,
    Tag,
    TagKey,
    Volume,
    VolumeKey,
)

# Only droplets can carry tags for now.
TAGGED_RESOURCE_TYPE = "droplets"


def _format_price(value: float) -> str:
    return format(value, ".12g")


def count_droplets(droplets: Iterable[Droplet], detail: DropletDetail = "basic") -> Counter[DropletKey]:
    counts: Counter[DropletKey] = Counter()
    for droplet in droplets:
        price_hourly = price_monthly = tags = ""
        if detail in ("price", "full"):
            price_hourly = _format_price(droplet.size.price_hourly)
            price_monthly = _format_price(droplet.size.price_monthly)
        if detail == "full":
            tags = ",".join(sorted(droplet.tags))
        key = DropletKey(
            status=droplet.status,
            region=droplet.region.slug,
            size=droplet.size.slug,
            price_hourly=price_hourly,
            price_monthly=price_monthly,
            tags=tags,
        )
        counts[key] += 1
    return counts


def count_floating_ips(floating_ips: Iterable[FloatingIP]) -> Counter[FloatingIPKey]:
    counts: Counter[FloatingIPKey] = Counter()
    for fip in floating_ips:
        status = "assigned" if fip.droplet is not None else "unassigned"
        counts[FloatingIPKey(status=status, region=fip.region.slug)] += 1
    return counts


def count_load_balancers(load_balancers: Iterable[LoadBalancer]) -> Counter[LoadBalancerKey]:
    counts: Counter[LoadBalancerKey] = Counter()
    for lb in load_balancers:
        counts[LoadBalancerKey(status=lb.status, region=lb.region.slug)] += 1
    return counts


def count_tags(tags: Iterable[Tag]) -> Counter[TagKey]:
    """Sum the tagged-droplet counts reported for each tag name."""

    counts: Counter[TagKey] = Counter()
    for tag in tags:
        counts[TagKey(name=tag.name, resource_type=TAGGED_RESOURCE_TYPE)] += tag.resources.droplets.count
    return counts


def count_volumes(volumes: Iterable[Volume]) -> Counter[VolumeKey]:
    counts: Counter[VolumeKey] = Counter()
    for volume in volumes:
        status = "attached" if volume.droplet_ids else "unattached"
        key = VolumeKey(status=status, region=volume.region.slug, size=str(volume.size_gigabytes))
        counts[key] += 1
    return counts


_AGGREGATORS: dict[ResourceKind, Callable[[Iterable], Counter]] = {
    ResourceKind.FLOATING_IPS: count_floating_ips,
    ResourceKind.LOAD_BALANCERS: count_load_balancers,
    ResourceKind.TAGS: count_tags,
    ResourceKind.VOLUMES: count_volumes,
}


def aggregate(
    kind: ResourceKind,
    records: Iterable,
    *,
    droplet_detail: DropletDetail = "basic",
) -> dict[GroupingKey, int]:
    """Dispatch `records` to the counting rule registered for `kind`."""

    if kind is ResourceKind.DROPLETS:
        counts: Mapping[GroupingKey, int] = count_droplets(records, droplet_detail)
    else:
        counts = _AGGREGATORS[kind](records)
    return dict(counts)

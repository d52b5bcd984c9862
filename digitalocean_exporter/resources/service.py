"""Read-only view over the refresh buffer used by the metric collector."""

from __future__ import annotations

from typing import Mapping, cast

from digitalocean_exporter.resources.buffer import RefreshBuffer
from digitalocean_exporter.resources.schemas import (
    DropletKey,
    FloatingIPKey,
    LoadBalancerKey,
    ResourceKind,
    TagKey,
    VolumeKey,
)


class DigitalOceanService:
    """Expose the buffer's current snapshots without triggering any I/O.

    Each accessor returns the mapping valid at call time. A refresh may
    replace it right after; callers holding the reference keep a consistent,
    if aging, view.
    """

    def __init__(self, buffer: RefreshBuffer) -> None:
        self._buffer = buffer

    def droplets(self) -> Mapping[DropletKey, int]:
        return cast(Mapping[DropletKey, int], self._buffer.snapshot(ResourceKind.DROPLETS))

    def floating_ips(self) -> Mapping[FloatingIPKey, int]:
        return cast(Mapping[FloatingIPKey, int], self._buffer.snapshot(ResourceKind.FLOATING_IPS))

    def load_balancers(self) -> Mapping[LoadBalancerKey, int]:
        return cast(Mapping[LoadBalancerKey, int], self._buffer.snapshot(ResourceKind.LOAD_BALANCERS))

    def tags(self) -> Mapping[TagKey, int]:
        return cast(Mapping[TagKey, int], self._buffer.snapshot(ResourceKind.TAGS))

    def volumes(self) -> Mapping[VolumeKey, int]:
        return cast(Mapping[VolumeKey, int], self._buffer.snapshot(ResourceKind.VOLUMES))

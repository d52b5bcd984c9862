"""Resource kinds, API record models and grouping keys."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field


DropletDetail = Literal["basic", "price", "full"]


class ResourceKind(str, Enum):
    """Resource collections polled from the DigitalOcean API.

    The value doubles as the `/v2/<value>` path segment and the JSON key
    holding the page's records.
    """

    DROPLETS = "droplets"
    FLOATING_IPS = "floating_ips"
    LOAD_BALANCERS = "load_balancers"
    TAGS = "tags"
    VOLUMES = "volumes"

    @property
    def path(self) -> str:
        return f"/v2/{self.value}"


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class Region(_Record):
    slug: str = ""


class Size(_Record):
    slug: str = ""
    price_hourly: float = 0.0
    price_monthly: float = 0.0


class Droplet(_Record):
    id: int | None = None
    status: str = ""
    region: Region = Field(default_factory=Region)
    size: Size = Field(default_factory=Size)
    tags: list[str] = Field(default_factory=list)


class DropletRef(_Record):
    id: int | None = None


class FloatingIP(_Record):
    ip: str | None = None
    region: Region = Field(default_factory=Region)
    droplet: DropletRef | None = None


class LoadBalancer(_Record):
    id: str | None = None
    status: str = ""
    region: Region = Field(default_factory=Region)


class TaggedResourceCount(_Record):
    count: int = Field(default=0, ge=0)


class TagResources(_Record):
    droplets: TaggedResourceCount = Field(default_factory=TaggedResourceCount)


class Tag(_Record):
    name: str
    resources: TagResources = Field(default_factory=TagResources)


class Volume(_Record):
    id: str | None = None
    region: Region = Field(default_factory=Region)
    size_gigabytes: int = Field(default=0, ge=0)
    droplet_ids: list[int] = Field(default_factory=list)


RECORD_MODELS: dict[ResourceKind, type[_Record]] = {
    ResourceKind.DROPLETS: Droplet,
    ResourceKind.FLOATING_IPS: FloatingIP,
    ResourceKind.LOAD_BALANCERS: LoadBalancer,
    ResourceKind.TAGS: Tag,
    ResourceKind.VOLUMES: Volume,
}


# Grouping keys. Field names match the Prometheus label names they feed.


class DropletKey(NamedTuple):
    status: str
    region: str
    size: str
    price_hourly: str = ""
    price_monthly: str = ""
    tags: str = ""


class FloatingIPKey(NamedTuple):
    status: str
    region: str


class LoadBalancerKey(NamedTuple):
    status: str
    region: str


class TagKey(NamedTuple):
    name: str
    resource_type: str


class VolumeKey(NamedTuple):
    status: str
    region: str
    size: str


GroupingKey = DropletKey | FloatingIPKey | LoadBalancerKey | TagKey | VolumeKey


# Health endpoint payloads.


class ResourceHealth(BaseModel):
    last_success: datetime | None = None
    last_error: str | None = None
    last_error_at: datetime | None = None
    series: int = 0

    @property
    def failing(self) -> bool:
        if self.last_error_at is None:
            return False
        return self.last_success is None or self.last_error_at > self.last_success


class HealthReport(BaseModel):
    """Refresh freshness reported alongside, not inside, the metrics exposition."""

    status: Literal["starting", "healthy", "degraded"]
    refresh_id: str | None = None
    refresh_interval_seconds: float
    resources: dict[str, ResourceHealth] = Field(default_factory=dict)
    counters: dict[str, int] = Field(default_factory=dict)

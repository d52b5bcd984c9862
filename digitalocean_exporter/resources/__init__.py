"""DigitalOcean resource kinds and their counting rules."""

from digitalocean_exporter.resources.aggregator import aggregate
from digitalocean_exporter.resources.schemas import GroupingKey, ResourceKind

__all__ = ["GroupingKey", "ResourceKind", "aggregate"]

"""Exporter configuration loaded via Pydantic settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from digitalocean_exporter.lib.do_client import DEFAULT_API_BASE
from digitalocean_exporter.resources.schemas import DropletDetail

# Paths the app serves itself; the metrics route may not shadow them.
RESERVED_PATHS = frozenset({"/", "/health"})


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables."""

    digitalocean_token: str = Field(..., min_length=1, alias="DIGITALOCEAN_TOKEN")
    api_base_url: str = Field(default=DEFAULT_API_BASE, alias="DIGITALOCEAN_API_BASE")
    listen_address: str = Field(default="localhost:9292", alias="LISTEN_ADDRESS")
    metrics_path: str = Field(default="/metrics", alias="METRICS_PATH")
    refresh_interval_seconds: float = Field(default=60.0, gt=0, alias="REFRESH_INTERVAL_SECONDS")
    request_timeout_seconds: float = Field(default=10.0, gt=0, alias="REQUEST_TIMEOUT_SECONDS")
    droplet_detail: DropletDetail = Field(default="basic", alias="DROPLET_DETAIL")
    metrics_namespace: str = Field(default="digitalocean", alias="METRICS_NAMESPACE")
    debug: bool = Field(default=False, alias="DEBUG")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("metrics_path")
    @classmethod
    def normalize_metrics_path(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("/"):
            value = f"/{value}"
        if value in RESERVED_PATHS:
            raise ValueError(f"metrics path cannot be {value}, it is already served")
        return value

    @field_validator("listen_address")
    @classmethod
    def validate_listen_address(cls, value: str) -> str:
        host, sep, port = value.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError("listen address must look like host:port")
        return value

    @property
    def listen_host(self) -> str:
        host = self.listen_address.rpartition(":")[0]
        return host.strip("[]") or "0.0.0.0"

    @property
    def listen_port(self) -> int:
        return int(self.listen_address.rpartition(":")[2])


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()  # type: ignore[call-arg]

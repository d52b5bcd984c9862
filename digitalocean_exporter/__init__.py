"""Prometheus exporter for DigitalOcean resource counts."""

__version__ = "0.2.0"

"""Prometheus exporter for Oracle databases, one collector per configured target."""

__version__ = "1.1.0"

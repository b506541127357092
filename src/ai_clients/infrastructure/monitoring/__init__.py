"""Monitoring infrastructure."""

from .metrics_collector import CIRCUIT_STATE_VALUES, MetricsCollector, MetricsConfig

__all__ = ["CIRCUIT_STATE_VALUES", "MetricsCollector", "MetricsConfig"]

"""Observability package: Prometheus metrics for the progression engine"""

from grow.observability.metrics import track_operation

__all__ = ["track_operation"]

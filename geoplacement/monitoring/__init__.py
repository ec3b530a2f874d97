"""Prometheus metrics for geo batch placement."""
from .metrics import MetricsCollector, OperationTracker

__all__ = ['MetricsCollector', 'OperationTracker']

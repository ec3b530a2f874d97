"""Geo-aware batch placement: node registry, node selection and batch tracking."""

__version__ = "0.1.0"

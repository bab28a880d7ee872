"""Forecast wizard backend: column profiling, series integrity validation, gap repair and aggregation."""

__version__ = "1.0.0"

"""In-process metrics aggregation and export for the pizza service."""

__version__ = "0.1.0"

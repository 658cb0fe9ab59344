"""Structured logging and Prometheus metrics."""

from parley.observability.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]

"""Observability: structured logging and metrics.

structlog for logging, prometheus_client for metrics.
"""

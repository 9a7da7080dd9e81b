"""Configuration model exports.

    from taskindex.config.models import StoreConfig, ObservabilityConfig
"""

from taskindex.config.models.observability import (
    LoggingConfig,
    ObservabilityConfig,
)
from taskindex.config.models.store import EventsConfig, StoreConfig

__all__ = [
    # Store
    "EventsConfig",
    "StoreConfig",
    # Observability
    "LoggingConfig",
    "ObservabilityConfig",
]

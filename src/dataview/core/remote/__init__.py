"""
Remote sources and registry.

This module provides the RemoteSource protocol that every transport
implements, a registry for pluggable sources, and the bundled memory and
HTTP implementations.
"""

from .retry import RetryConfig, is_retryable_error, retry_async
from .source import (
    RemoteSource,
    get_source,
    is_source_available,
    list_sources,
    register_source,
)

# Import source implementations to trigger registration
from .http import HttpRemoteSource
from .memory import MemoryRemoteSource

__all__ = [
    # Protocol and registry
    "RemoteSource",
    "register_source",
    "get_source",
    "list_sources",
    "is_source_available",
    # Implementations
    "HttpRemoteSource",
    "MemoryRemoteSource",
    # Retry
    "RetryConfig",
    "is_retryable_error",
    "retry_async",
]

"""
Middleware modules for the dispatch API.

Provides request processing middleware for:
- Correlation ID tracking for request tracing
- Logging with correlation context injection
"""

from .correlation import (
    CorrelationIdMiddleware,
    CorrelationLogFilter,
    configure_logging,
    correlation_id_ctx,
    request_id_ctx,
)

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationLogFilter",
    "configure_logging",
    "correlation_id_ctx",
    "request_id_ctx",
]

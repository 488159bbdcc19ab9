"""HTTP middleware."""

from ndrc.api.middleware.correlation_id import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]

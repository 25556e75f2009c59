"""ASGI middleware for the top-up API."""

from .correlation import CorrelationIdMiddleware
from .route_auth import RouteAuthorizationMiddleware

__all__ = ["CorrelationIdMiddleware", "RouteAuthorizationMiddleware"]

"""
Middleware components for request processing.
"""

from escrow.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]

"""API middleware."""

from pdv_sync.api.middleware.error_handler import ErrorHandlerMiddleware
from pdv_sync.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware"]

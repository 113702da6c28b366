"""API middleware."""

from workshop.api.middleware.error_handler import ErrorHandlerMiddleware
from workshop.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware"]

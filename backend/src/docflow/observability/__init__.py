"""Observability module for DocFlow.

Provides structured logging, request correlation, metrics and health checks.
"""

from .logging_config import configure_logging
from .middleware import RequestIDMiddleware
from .request_id import generate_request_id, get_request_id, set_request_id

__all__ = [
    "configure_logging",
    "RequestIDMiddleware",
    "generate_request_id",
    "get_request_id",
    "set_request_id",
]

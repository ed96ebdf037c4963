"""
HTTP API for the clinic booking agent.
"""

from .app import create_app, build_runtime
from .middleware import SecurityHeaders, LoggingMiddleware

__all__ = [
    "create_app",
    "build_runtime",
    "SecurityHeaders",
    "LoggingMiddleware",
]

"""
Middleware package for security and request processing
"""
from .errors import UnhandledErrorMiddleware
from .security import SecurityHeadersMiddleware

__all__ = [
    "SecurityHeadersMiddleware",
    "UnhandledErrorMiddleware",
]

"""Token encryption, rate limiting and shared error types for OAuth services."""

__version__ = "0.1.0"
__all__ = ["encryption", "errors", "ratelimiter"]
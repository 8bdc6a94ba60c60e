"""HTTP API for recurcal."""

from .middleware import correlation_id_middleware, error_middleware, get_request_id

__all__ = ["correlation_id_middleware", "error_middleware", "get_request_id"]

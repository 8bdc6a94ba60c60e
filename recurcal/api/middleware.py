"""Request middleware: correlation ids and error-to-status mapping."""

import logging
import uuid
from collections.abc import Callable
from typing import Any

from aiohttp import web

from ..core.logging_config import get_request_id, request_id_var
from ..exceptions import EventNotFoundError, EventValidationError, RecurcalError

logger = logging.getLogger(__name__)

__all__ = ["correlation_id_middleware", "error_middleware", "get_request_id"]


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Any]
) -> web.StreamResponse:
    """Attach a correlation id to the request's log records and its response.

    Uses the client's X-Request-ID or X-Correlation-ID header when present,
    otherwise generates a UUID. Handlers read it with ``get_request_id()``.
    """
    correlation_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )

    token = request_id_var.set(correlation_id)
    try:
        response = await handler(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = correlation_id
    return response


@web.middleware
async def error_middleware(
    request: web.Request, handler: Callable[[web.Request], Any]
) -> web.StreamResponse:
    """Turn recurcal errors into JSON responses.

    EventValidationError -> 400, EventNotFoundError -> 404, any other
    RecurcalError -> 500. The body is ``{"message": ...}``.
    """
    try:
        return await handler(request)
    except EventValidationError as e:
        logger.info("Rejected %s %s: %s", request.method, request.path, e)
        return web.json_response({"message": str(e)}, status=400)
    except EventNotFoundError as e:
        logger.info("Not found on %s %s: %s", request.method, request.path, e)
        return web.json_response({"message": str(e)}, status=404)
    except RecurcalError as e:
        logger.exception("Request %s %s failed", request.method, request.path)
        return web.json_response({"message": str(e)}, status=500)

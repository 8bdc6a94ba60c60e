"""Event REST routes."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional

from aiohttp import web

from ..calendar.models import CalendarEvent, EventException, Occurrence
from ..core.time_utils import parse_datetime
from ..domain.service import CalendarService
from ..exceptions import EventValidationError

logger = logging.getLogger(__name__)


def _dump(record: CalendarEvent | EventException | Occurrence) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


def _parse_param(value: Optional[str], name: str) -> Optional[datetime]:
    if value is None or not value.strip():
        return None
    try:
        return parse_datetime(value)
    except ValueError as e:
        raise EventValidationError(f"Invalid {name}: {value!r}") from e


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise EventValidationError(f"Request body is not valid JSON: {e.msg}") from e
    if not isinstance(body, dict):
        raise EventValidationError("Request body must be a JSON object")
    return body


def register_event_routes(app: web.Application, service: CalendarService) -> None:
    """Register the event API routes.

    Args:
        app: aiohttp web application
        service: Calendar service the handlers delegate to
    """

    async def health_check(_request: web.Request) -> web.Response:
        """Health check with the stored event count."""
        return web.json_response({"status": "ok", "eventCount": service.event_count()})

    async def list_events(_request: web.Request) -> web.Response:
        """All events: single events, edited occurrences and series over the default window."""
        occurrences = service.list_occurrences()
        logger.debug("/api/events returning %d occurrences", len(occurrences))
        return web.json_response([_dump(o) for o in occurrences])

    async def list_events_in_range(request: web.Request) -> web.Response:
        """Occurrences between startDate and endDate."""
        start = _parse_param(request.query.get("startDate"), "startDate")
        end = _parse_param(request.query.get("endDate"), "endDate")
        if start is None or end is None:
            raise EventValidationError("startDate and endDate are required")

        occurrences = service.list_occurrences(start, end)
        logger.debug(
            "/api/events/range %s..%s returning %d occurrences",
            start.isoformat(),
            end.isoformat(),
            len(occurrences),
        )
        return web.json_response([_dump(o) for o in occurrences])

    async def get_event(request: web.Request) -> web.Response:
        event = service.get_event(request.match_info["event_id"])
        return web.json_response(_dump(event))

    async def create_event(request: web.Request) -> web.Response:
        body = await _read_json(request)
        event = service.create_event(body)
        return web.json_response(_dump(event), status=201)

    async def update_event(request: web.Request) -> web.Response:
        """Edit a whole series; occurrence ids edit the series they belong to."""
        body = await _read_json(request)
        event = service.update_event(request.match_info["event_id"], body)
        return web.json_response(_dump(event))

    async def delete_event(request: web.Request) -> web.Response:
        """Delete a series, or one occurrence when instanceDate or an occurrence id is given."""
        instance_date = _parse_param(request.query.get("instanceDate"), "instanceDate")
        service.delete_event(request.match_info["event_id"], instance_date)
        return web.Response(status=204)

    async def edit_instance(request: web.Request) -> web.Response:
        """Edit one occurrence: body is ``{"instanceDate": ..., <updates>}``."""
        body = await _read_json(request)
        raw_date = body.pop("instanceDate", None)
        if raw_date is not None and not isinstance(raw_date, str):
            raise EventValidationError("instanceDate must be an ISO-8601 string")
        instance_date = _parse_param(raw_date, "instanceDate")
        event = service.edit_instance(request.match_info["event_id"], body, instance_date)
        return web.json_response(_dump(event))

    app.router.add_get("/api/health", health_check)
    app.router.add_get("/api/events", list_events)
    app.router.add_get("/api/events/range", list_events_in_range)
    app.router.add_post("/api/events", create_event)
    app.router.add_get("/api/events/{event_id}", get_event)
    app.router.add_put("/api/events/{event_id}", update_event)
    app.router.add_delete("/api/events/{event_id}", delete_event)
    app.router.add_patch("/api/events/{event_id}/instance", edit_instance)

"""aiohttp application factory and server runner."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Optional

from aiohttp import web

from ..core.config_loader import Config
from ..domain.service import CalendarService
from ..storage import create_store
from .middleware import correlation_id_middleware, error_middleware
from .routes import register_event_routes

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("calendar_service", CalendarService)


def make_app(service: CalendarService) -> web.Application:
    """Create the web application with event routes wired to ``service``."""
    app = web.Application(middlewares=[correlation_id_middleware, error_middleware])
    app[SERVICE_KEY] = service
    register_event_routes(app, service)

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


async def _serve(config: Config, stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the HTTP server until ``stop_event`` is set or a signal arrives."""
    store = create_store(config)
    service = CalendarService(store, config)
    app = make_app(service)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=config.server_bind, port=config.server_port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", config.server_bind, config.server_port)
        await runner.cleanup()
        raise

    logger.info(
        "recurcal serving on http://%s:%d (store=%s)",
        config.server_bind,
        config.server_port,
        store.name,
    )

    stop = stop_event or asyncio.Event()
    if stop_event is None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Not available on every platform (e.g. Windows)
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop.set)

    try:
        await stop.wait()
    finally:
        logger.info("Shutting down server")
        await runner.cleanup()


def start_server(config: Config) -> None:
    """Start the asyncio event loop and HTTP server.

    Blocks until SIGINT/SIGTERM is received.
    """
    try:
        logger.debug("Running asyncio event loop for server")
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")

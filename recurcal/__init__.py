"""recurcal - recurring calendar events with per-occurrence edits.

Expands stored recurring series into concrete occurrences for a time window,
and records single-occurrence deletes and edits as exceptions to the series.
Imports here stay light; the server and its dependencies load on demand.
"""

__version__ = "0.1.0"

from typing import Optional


def run_server(args: Optional[object] = None) -> None:
    """Start the recurcal HTTP server.

    Configuration is layered: the config file (``args.config`` or
    ./recurcal.yaml), then RECURCAL_* environment variables (a .env file in
    the working directory fills in unset ones), then command line overrides.

    Args:
        args: Optional argparse namespace with ``port``, ``config`` and ``debug``
    """
    import logging

    from .core.logging_config import configure_logging

    # Environment-driven levels until the config file has been read
    configure_logging()
    logger = logging.getLogger(__name__)

    from .api.server import start_server
    from .core.config_loader import load_config
    from .core.config_manager import ConfigManager

    config = load_config(getattr(args, "config", None))
    config = config.merged(ConfigManager().load_full_config())

    port = getattr(args, "port", None)
    if port is not None:
        config = config.merged({"server_port": port})
        logger.debug("Applied command line port override: %s", port)

    configure_logging(config.log_level, debug=bool(getattr(args, "debug", False)))
    logger.info("Starting recurcal %s", __version__)

    start_server(config)

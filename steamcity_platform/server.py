"""
Server runner for the SteamCity REST API.

This module provides a simple way to start the FastAPI server with proper configuration.
"""

import uvicorn
import logging
from typing import Optional

from .config import get_config
from .logging_config import setup_logging


def run_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: Optional[bool] = None,
    workers: Optional[int] = None
):
    """
    Run the FastAPI server.

    Arguments left as None fall back to the server configuration.

    Args:
        host: Host to bind to
        port: Port to bind to
        reload: Enable auto-reload for development
        workers: Number of worker processes
    """
    config = get_config()
    setup_logging(config.logging)

    host = host or config.server.host
    port = port or config.server.port
    reload = config.server.reload if reload is None else reload
    workers = workers or config.server.workers

    logger = logging.getLogger(__name__)
    logger.info(f"Starting SteamCity API server on {host}:{port}",
                extra={"data_dir": config.storage.data_dir, "workers": workers})

    uvicorn.run(
        "steamcity_platform.api.rest_api:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=config.logging.level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    run_server()

"""
Entry point for the fhEVM API server.
"""

from __future__ import annotations

import logging

import uvicorn

from fhevm_session.common.config import Config

from .core import FhevmServer


def start_server(
    config: Config | None = None, host: str | None = None, port: int | None = None
) -> None:
    """Start the API server."""
    if config is None:
        config = Config()
    logging.basicConfig(level=config.LOG_LEVEL)
    server = FhevmServer(config=config, server_host=host, server_port=port)
    uvicorn.run(server.app, host=server.server_host, port=server.server_port)


__all__ = ["FhevmServer", "start_server"]

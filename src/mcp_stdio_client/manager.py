"""Connect to several MCP servers in parallel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from .config import ServerConfig, parse_servers_config
from .errors import ServerStartupError
from .session import McpClient

logger = logging.getLogger(__name__)


async def connect_servers(
    servers: Mapping[str, ServerConfig | Mapping[str, Any]],
) -> dict[str, McpClient]:
    """Initialize one McpClient per configured server, concurrently.

    Args:
        servers: Server name -> launch configuration

    Returns:
        Initialized clients keyed by server name

    Raises:
        ConfigError: If a launch configuration is invalid
        ServerStartupError: If any server fails to initialize. Every
            failure is reported, and the clients that did start are
            closed before the error is raised.
    """
    configs = parse_servers_config(dict(servers), source="connect_servers")
    clients = {name: McpClient.from_config(cfg, name=name) for name, cfg in configs.items()}

    results = await asyncio.gather(
        *(client.initialize() for client in clients.values()),
        return_exceptions=True,
    )

    failures: dict[str, BaseException] = {}
    for name, result in zip(clients, results):
        if isinstance(result, BaseException):
            logger.error(f"Server {name!r} failed to initialize: {result}")
            failures[name] = result

    if failures:
        started = {name: c for name, c in clients.items() if name not in failures}
        if started:
            logger.info(f"Closing {len(started)} started server(s) after startup failure")
        await close_servers(started)
        raise ServerStartupError(failures)

    logger.info(f"Connected to {len(clients)} server(s): {', '.join(clients)}")
    return clients


async def close_servers(clients: Mapping[str, McpClient]) -> None:
    """Close every client concurrently."""
    await asyncio.gather(*(client.close() for client in clients.values()))

"""MCP stdio client.

Speaks JSON-RPC 2.0 to Model Context Protocol servers launched as
subprocesses:
- McpClient: one server process, handshake, tool listing and tool calls
- connect_servers: start several servers in parallel
- ServerConfig / load_servers_config: launch configuration
"""

__version__ = "0.1.0"

from .config import ServerConfig, load_servers_config  # noqa: E402
from .errors import (  # noqa: E402
    ClientClosedError,
    ConfigError,
    McpClientError,
    NotConnectedError,
    RemoteError,
    RequestTimeoutError,
    ServerStartupError,
    SpawnError,
    TransportError,
)
from .manager import close_servers, connect_servers  # noqa: E402
from .session import McpClient, SessionState  # noqa: E402

__all__ = [
    "__version__",
    # Client
    "McpClient",
    "SessionState",
    "connect_servers",
    "close_servers",
    # Configuration
    "ServerConfig",
    "load_servers_config",
    # Errors
    "McpClientError",
    "SpawnError",
    "TransportError",
    "ClientClosedError",
    "NotConnectedError",
    "RequestTimeoutError",
    "RemoteError",
    "ConfigError",
    "ServerStartupError",
]

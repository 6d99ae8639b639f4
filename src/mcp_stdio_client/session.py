"""MCP client session over a subprocess's stdio.

One McpClient owns one server process. The session performs the
initialize handshake and then exposes tool listing and tool calls.

Usage:
    async with McpClient("npx", ["-y", "@modelcontextprotocol/server-filesystem", "."]) as client:
        tools = await client.list_tools()
        content = await client.call_tool("read_file", {"path": "README.md"})

State machine:
    UNSTARTED -> STARTING -> READY -> CLOSED

A server exit or stream failure moves STARTING/READY straight to CLOSED
and fails every pending request. CLOSED is terminal.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

from . import __version__
from .config import default_timeout
from .correlator import RequestCorrelator
from .errors import ClientClosedError, NotConnectedError, TransportError
from .protocol import (
    PROTOCOL_VERSION,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    LineDecoder,
    Message,
    encode_message,
)
from .transport import ProcessTransport

if TYPE_CHECKING:
    from .config import ServerConfig

logger = logging.getLogger(__name__)

CLIENT_INFO = {"name": "mcp-stdio-client", "version": __version__}


class SessionState(str, Enum):
    """Session lifecycle states."""

    UNSTARTED = "unstarted"
    STARTING = "starting"
    READY = "ready"
    CLOSED = "closed"


class McpClient:
    """Lightweight MCP client speaking JSON-RPC 2.0 to a server process.

    Args:
        command: Executable to launch
        args: Arguments for the executable
        env: Environment variables overlaid on the current environment
        timeout: Seconds to wait for each response. Defaults to
            MCP_CLIENT_TIMEOUT, or 30 seconds when that is unset
        cwd: Working directory for the server process
        name: Label used in log messages
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        cwd: str | None = None,
        name: str | None = None,
    ) -> None:
        if timeout is None:
            timeout = default_timeout()
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.name = name or command
        self._transport = ProcessTransport(command, args, env=env, cwd=cwd)
        self._correlator = RequestCorrelator(timeout)
        self._decoder = LineDecoder()
        self._state = SessionState.UNSTARTED
        self._server_info: dict[str, Any] | None = None

    @classmethod
    def from_config(cls, config: ServerConfig, name: str | None = None) -> McpClient:
        """Create a client from a ServerConfig."""
        return cls(
            config.command,
            config.args,
            env=config.env,
            timeout=config.timeout,
            cwd=config.cwd,
            name=name,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == SessionState.READY

    @property
    def timeout(self) -> float:
        return self._correlator.timeout

    @property
    def server_info(self) -> dict[str, Any] | None:
        """serverInfo from the initialize result, once the handshake is done."""
        return self._server_info

    @property
    def pending_count(self) -> int:
        """Number of requests still awaiting a response."""
        return self._correlator.pending_count

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> Any:
        """Spawn the server process and perform the initialize handshake.

        Returns the initialize result (server identification and
        capabilities). If the handshake fails, the client closes itself
        before the error propagates.

        Raises:
            SpawnError: If the server cannot be launched
            TransportError: If the server exits during the handshake
            RequestTimeoutError: If the server does not answer in time
            RemoteError: If the server rejects the handshake
        """
        if self._state != SessionState.UNSTARTED:
            raise NotConnectedError(f"Cannot initialize a client in state {self._state.value}")

        self._state = SessionState.STARTING
        try:
            await self._transport.start(self._on_data, self._on_transport_failure)
        except Exception:
            self._state = SessionState.CLOSED
            raise

        try:
            result = await self._request(
                "initialize",
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": CLIENT_INFO,
                },
            )
        except BaseException:
            await self.close()
            raise

        # Fire-and-forget: delivery is not confirmed and a failed write
        # does not fail the handshake.
        self._notify("notifications/initialized")

        if isinstance(result, dict) and isinstance(result.get("serverInfo"), dict):
            self._server_info = result["serverInfo"]
        self._state = SessionState.READY
        logger.info(
            f"[{self.name}] initialized "
            f"(server={(self._server_info or {}).get('name', 'unknown')})"
        )
        return result

    async def close(self) -> None:
        """Shut down the server process.

        Pending requests fail immediately with ClientClosedError; the
        process gets a short grace period before it is killed. Calling
        close() again, or on a client that never started, does nothing.
        """
        if self._state == SessionState.UNSTARTED:
            return

        self._state = SessionState.CLOSED
        self._correlator.reject_all(ClientClosedError())
        # Also reaps a process that already exited on its own
        await self._transport.terminate()
        self._decoder.clear()

    async def __aenter__(self) -> McpClient:
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # =========================================================================
    # Operations
    # =========================================================================

    async def list_tools(self) -> list[dict[str, Any]]:
        """List tool definitions exposed by the server."""
        result = await self._request("tools/list", {})
        tools = result.get("tools") if isinstance(result, dict) else None
        return tools if isinstance(tools, list) else []

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Call a tool by name and return the result content."""
        result = await self._request("tools/call", {"name": name, "arguments": arguments or {}})
        if not isinstance(result, dict):
            return None
        return result.get("content")

    # =========================================================================
    # Internals
    # =========================================================================

    async def _request(self, method: str, params: dict[str, Any]) -> Any:
        if self._state not in (SessionState.STARTING, SessionState.READY):
            raise NotConnectedError(f"Client {self.name!r} is {self._state.value}")

        request_id, future = self._correlator.register(method)
        logger.debug(f"[{self.name}] -> {method} (id={request_id})")
        self._transport.write(
            encode_message(JsonRpcRequest(id=request_id, method=method, params=params))
        )
        return await future

    def _notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        self._transport.write(encode_message(JsonRpcNotification(method=method, params=params)))

    def _on_data(self, chunk: bytes) -> None:
        for message in self._decoder.feed(chunk):
            self._dispatch(message)

    def _dispatch(self, message: Message) -> None:
        if isinstance(message, JsonRpcResponse):
            if not self._correlator.resolve(message):
                logger.debug(f"[{self.name}] discarding response for unknown id {message.id}")
            return
        # Server notifications and requests are not subscribed to
        logger.debug(f"[{self.name}] ignoring server message: {message.method}")

    def _on_transport_failure(self, error: TransportError) -> None:
        if self._state == SessionState.CLOSED:
            return
        logger.warning(f"[{self.name}] {error}")
        self._state = SessionState.CLOSED
        self._correlator.reject_all(error)

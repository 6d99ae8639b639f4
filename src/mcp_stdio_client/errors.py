"""Error types raised by the stdio client.

Every error derives from McpClientError so callers can catch the whole
family at once. Errors are delivered to the awaiting caller; the client
never retries on its own.
"""

from __future__ import annotations

import json
from typing import Any


class McpClientError(Exception):
    """Base class for all client errors."""


class SpawnError(McpClientError):
    """The server process could not be launched."""

    def __init__(self, command: str, reason: BaseException | str) -> None:
        super().__init__(f"Failed to launch {command!r}: {reason}")
        self.command = command
        self.reason = reason


class TransportError(McpClientError):
    """The server process exited or its streams failed after start."""


class ClientClosedError(TransportError):
    """The client was closed while the request was pending."""

    def __init__(self, message: str = "Client closed") -> None:
        super().__init__(message)


class NotConnectedError(McpClientError):
    """A request was issued on a client that is not running."""


class RequestTimeoutError(McpClientError, TimeoutError):
    """No response arrived within the configured timeout."""

    def __init__(self, method: str, timeout: float) -> None:
        super().__init__(f"Timeout ({timeout:g}s) for {method}")
        self.method = method
        self.timeout = timeout


class RemoteError(McpClientError):
    """The server answered a request with an error object."""

    def __init__(
        self,
        message: str,
        code: Any | None = None,
        data: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    @classmethod
    def from_error(cls, error: Any) -> RemoteError:
        """Build from a JSON-RPC error value.

        Falls back to the JSON form of the whole value when it carries
        no message, which includes errors that are not objects at all.
        """
        if not isinstance(error, dict):
            return cls(json.dumps(error, separators=(",", ":")))
        message = error.get("message")
        if not message:
            message = json.dumps(error, separators=(",", ":"))
        return cls(str(message), code=error.get("code"), data=error.get("data"))


class ConfigError(McpClientError):
    """A server configuration could not be loaded."""


class ServerStartupError(McpClientError):
    """One or more servers failed to initialize in connect_servers()."""

    def __init__(self, failures: dict[str, BaseException]) -> None:
        names = ", ".join(sorted(failures))
        details = "; ".join(f"{name}: {exc}" for name, exc in sorted(failures.items()))
        super().__init__(f"Failed to start server(s) {names} ({details})")
        self.failures = failures

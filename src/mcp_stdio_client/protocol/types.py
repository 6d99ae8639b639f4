"""JSON-RPC 2.0 message types.

Incoming lines are decoded once into one of three models:
- JsonRpcRequest: has an id and a method (server-initiated request)
- JsonRpcNotification: has a method but no id
- JsonRpcResponse: has an id and either a result or an error

Field names follow the wire format, so camelCase keys are left untouched.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

JSONRPC_VERSION = "2.0"

# Protocol revision sent in the initialize handshake
PROTOCOL_VERSION = "2024-11-05"

RequestId = Union[int, str]


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId
    method: str
    params: dict[str, Any] | None = None


class JsonRpcNotification(BaseModel):
    """JSON-RPC 2.0 notification (no response expected)."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str
    params: dict[str, Any] | None = None


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object.

    Servers are not always strict: string codes and non-string messages
    are accepted as sent, and unknown keys are kept.
    """

    model_config = ConfigDict(extra="allow")

    code: Any = None
    message: Any = None
    data: Any = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response."""

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId | None
    result: Any | None = None
    # JsonRpcError for objects; anything else (e.g. a bare string) is kept as sent
    error: Any = None

    @field_validator("error")
    @classmethod
    def _error_object(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return JsonRpcError.model_validate(value)
        return value

    def is_error(self) -> bool:
        return self.error is not None

    def error_payload(self) -> Any:
        """The error as plain JSON data, for building a RemoteError."""
        if isinstance(self.error, JsonRpcError):
            return self.error.model_dump(exclude_none=True)
        return self.error


Message = Union[JsonRpcRequest, JsonRpcNotification, JsonRpcResponse]


def parse_message(data: Any) -> Message | None:
    """Classify a decoded JSON value as a request, notification or response.

    Returns None for anything that is not a well-formed message.
    """
    if not isinstance(data, dict):
        return None

    try:
        if "method" in data:
            if data.get("id") is None:
                return JsonRpcNotification.model_validate(data)
            return JsonRpcRequest.model_validate(data)
        if "id" in data and ("result" in data or "error" in data):
            return JsonRpcResponse.model_validate(data)
    except ValidationError:
        return None
    return None


def encode_message(message: Message) -> bytes:
    """Serialize a message as one compact UTF-8 JSON line."""
    return (message.model_dump_json(exclude_none=True) + "\n").encode("utf-8")

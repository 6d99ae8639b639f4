"""JSON-RPC wire layer: message types and newline framing."""

from .framing import LineDecoder, decode_line
from .types import (
    JSONRPC_VERSION,
    PROTOCOL_VERSION,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    Message,
    encode_message,
    parse_message,
)

__all__ = [
    "JSONRPC_VERSION",
    "PROTOCOL_VERSION",
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "LineDecoder",
    "Message",
    "decode_line",
    "encode_message",
    "parse_message",
]

"""Small helpers for peeking at JSON-RPC request bodies.

The gateway never dispatches messages itself. It only needs to know whether
a body opens a session, which client sent it and which id to echo back in
an error envelope.
"""

import json
from typing import Any, Optional

SESSION_HEADER = "mcp-session-id"
JSONRPC_VERSION = "2.0"

# JSON-RPC error codes used on the session endpoint
UNAUTHORIZED = -32001
BAD_REQUEST = -32000
INTERNAL_ERROR = -32603


def parse_body(body: bytes) -> Any:
    """Decode a request body, returning None when it is not JSON."""
    if not body:
        return None
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None


def _messages(message: Any) -> list:
    if isinstance(message, list):
        return [m for m in message if isinstance(m, dict)]
    if isinstance(message, dict):
        return [message]
    return []


def is_initialize_request(message: Any) -> bool:
    """True for a single ``initialize`` request; batches never open a session."""
    return isinstance(message, dict) and message.get("method") == "initialize"


def client_name(message: Any) -> Optional[str]:
    """``params.clientInfo.name`` of an initialize request, if any."""
    for m in _messages(message):
        if m.get("method") != "initialize":
            continue
        params = m.get("params")
        info = params.get("clientInfo") if isinstance(params, dict) else None
        name = info.get("name") if isinstance(info, dict) else None
        if isinstance(name, str):
            return name
    return None


def request_id(message: Any) -> Any:
    """Id of a single request; batches and notifications yield None."""
    if isinstance(message, dict):
        value = message.get("id")
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return value
    return None


def error_envelope(code: int, message: str, id: Any = None) -> dict:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "error": {"code": code, "message": message},
        "id": id,
    }

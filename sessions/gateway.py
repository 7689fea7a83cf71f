"""ASGI app for the MCP endpoint: routes each request to its session's transport.

Runs behind ``MCPOAuthMiddleware`` when OAuth is enabled, so every request
that reaches it is already authenticated.
"""

import logging
from typing import Optional

from starlette.requests import Request
from starlette.responses import JSONResponse

from oauth.errors import InternalFault, UnknownOrMissingSession
from sessions import jsonrpc
from sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)


class _ResponseTracker:
    """Wraps ``send`` to record whether a response has started and its status."""

    def __init__(self, send):
        self._send = send
        self.started = False
        self.status: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status is not None and 200 <= self.status < 300

    async def __call__(self, message):
        if message["type"] == "http.response.start":
            self.started = True
            self.status = message["status"]
        await self._send(message)


def _replay_receive(body: bytes, receive):
    """A ``receive`` that yields an already-read body once, then defers to ``receive``."""
    replayed = False

    async def replay():
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class McpGateway:
    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def __call__(self, scope, receive, send):
        tracker = _ResponseTracker(send)
        try:
            await self._route(scope, receive, tracker)
        except UnknownOrMissingSession as exc:
            logger.info(f"[SESSION] Rejected {scope.get('method')} request: {exc.description}")
            await self._send_error(
                scope, receive, tracker, exc.status_code, jsonrpc.BAD_REQUEST, exc.description, exc.request_id
            )
        except Exception as exc:
            if not isinstance(exc, InternalFault):
                logger.exception("[SESSION] Unhandled error on the MCP endpoint")
            if tracker.started:
                raise
            await self._send_error(scope, receive, tracker, 500, jsonrpc.INTERNAL_ERROR, "Internal Server Error")

    async def _route(self, scope, receive, tracker: _ResponseTracker):
        request = Request(scope, receive)
        session_id = request.headers.get(jsonrpc.SESSION_HEADER)

        if session_id:
            session = self.registry.get(session_id)
            if session is None:
                raise UnknownOrMissingSession()
            await session.transport.handle_request(scope, receive, tracker)
            if request.method == "DELETE":
                await self.registry.terminate(session_id)
            return

        if request.method != "POST":
            raise UnknownOrMissingSession()

        body = await request.body()
        message = jsonrpc.parse_body(body)
        if not jsonrpc.is_initialize_request(message):
            raise UnknownOrMissingSession(request_id=jsonrpc.request_id(message))

        session = await self.registry.open_session()
        try:
            await session.transport.handle_request(scope, _replay_receive(body, receive), tracker)
        except Exception:
            await self.registry.terminate(session.session_id)
            raise
        # Only a completed handshake keeps its session
        if not tracker.succeeded:
            logger.info(
                f"[SESSION] Initialize for session {session.session_id} was rejected "
                f"with status {tracker.status}"
            )
            await self.registry.terminate(session.session_id)

    async def _send_error(self, scope, receive, send, status_code, code, message, request_id=None):
        response = JSONResponse(jsonrpc.error_envelope(code, message, request_id), status_code=status_code)
        await response(scope, receive, send)

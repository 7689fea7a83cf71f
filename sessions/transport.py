"""Production transport: the MCP SDK's streamable HTTP transport, one per session.

Each transport runs the FastMCP low-level server in a task owned by
``McpTransportFactory.run()``, which the application lifespan enters.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport

from sessions.registry import OnClose

logger = logging.getLogger(__name__)


class McpSessionTransport:
    """Adapts ``StreamableHTTPServerTransport`` to the registry's transport protocol."""

    def __init__(self, session_id: str, transport: StreamableHTTPServerTransport):
        self.session_id = session_id
        self._transport = transport

    @property
    def is_terminated(self) -> bool:
        return self._transport.is_terminated

    async def handle_request(self, scope, receive, send) -> None:
        await self._transport.handle_request(scope, receive, send)

    async def close(self) -> None:
        # A DELETE forwarded to the transport has already terminated it
        if not self._transport.is_terminated:
            await self._transport.terminate()


class McpTransportFactory:
    """Creates a streamable HTTP transport bound to ``server`` for each new session."""

    def __init__(self, server: Server, json_response: bool = False):
        self.server = server
        self.json_response = json_response
        self._task_group: Optional[TaskGroup] = None

    @asynccontextmanager
    async def run(self):
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            try:
                yield
            finally:
                self._task_group = None
                tg.cancel_scope.cancel()

    async def __call__(self, session_id: str, on_close: OnClose) -> McpSessionTransport:
        if self._task_group is None:
            raise RuntimeError("McpTransportFactory.run() must be active before sessions are opened")

        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self.json_response,
        )

        async def run_server(*, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
            try:
                async with transport.connect() as (read_stream, write_stream):
                    task_status.started()
                    await self.server.run(
                        read_stream,
                        write_stream,
                        self.server.create_initialization_options(),
                    )
            except Exception:
                # Must not escape: the task group is shared by every session
                logger.exception(f"[SESSION] MCP server for session {session_id} crashed")
            finally:
                on_close(session_id)

        await self._task_group.start(run_server)
        return McpSessionTransport(session_id, transport)

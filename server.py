"""Application factory for the MCP session gateway.

Wires the OAuth authorization server, the bearer gate and the session
registry into one FastAPI app. All shared state (stores, registry) is
created here and injected, so tests can build isolated apps with fake
clocks and transports.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import anyio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Config
from oauth.authorization import AuthorizationService
from oauth.clock import Clock, default_clock
from oauth.endpoints import create_oauth_router
from oauth.errors import GatewayError
from oauth.middleware import BearerGate, MCPOAuthMiddleware
from oauth.models import Client
from oauth.stores import ClientStore, InMemoryClientStore, InMemoryTokenStore, TokenStore
from oauth.token_exchange import TokenExchangeService
from sessions.gateway import McpGateway
from sessions.jsonrpc import SESSION_HEADER
from sessions.registry import SessionRegistry, TransportFactory

logger = logging.getLogger(__name__)

VERSION = "0.3.0"
DEMO_CLIENT_ID = "mcp-demo-client"


def default_transport_factory(config: Config) -> TransportFactory:
    """Streamable HTTP transports serving the tools in ``tools.py``."""
    from sessions.transport import McpTransportFactory
    from tools import mcp

    return McpTransportFactory(mcp._mcp_server, json_response=config.json_response)


async def _purge_tokens(tokens: TokenStore, interval: float) -> None:
    while True:
        await anyio.sleep(interval)
        tokens.purge_expired()


def create_app(
    config: Config,
    *,
    transport_factory: Optional[TransportFactory] = None,
    token_store: Optional[TokenStore] = None,
    client_store: Optional[ClientStore] = None,
    clock: Clock = default_clock,
) -> FastAPI:
    """Build the FastAPI app for ``config``."""
    tokens = token_store if token_store is not None else InMemoryTokenStore(clock)
    clients = client_store if client_store is not None else InMemoryClientStore()
    server_url = config.server_url

    clients.put(Client(
        client_id=DEMO_CLIENT_ID,
        redirect_uris=(f"{server_url}/callback",),
        client_name="MCP Demo Client",
    ))

    registry = SessionRegistry(
        transport_factory or default_transport_factory(config),
        idle_timeout=config.session_idle_timeout,
        close_timeout=config.session_close_timeout,
        clock=clock,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[STARTUP] SERVER_URL: {server_url}")
        logger.info(f"[STARTUP] MCP endpoint: {config.mcp_path} (OAuth enabled: {config.enable_oauth})")
        async with registry.run(sweep_interval=config.maintenance_interval):
            async with anyio.create_task_group() as tg:
                tg.start_soon(_purge_tokens, tokens, config.maintenance_interval)
                yield
                tg.cancel_scope.cancel()
        logger.info("[SHUTDOWN] All sessions closed")

    app = FastAPI(
        title="MCP Session Gateway",
        description="OAuth 2.1 + PKCE authorization server gating a session-aware MCP endpoint",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.tokens = tokens
    app.state.clients = clients
    app.state.registry = registry

    # Add CORS middleware for browser-based MCP client access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[SESSION_HEADER, "WWW-Authenticate"],
    )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.info(f"[HTTP] {request.method} {request.url.path} -> {exc.status_code} {exc.error}")
        return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers={"Cache-Control": "no-store"})

    # ============== Session-bound MCP endpoint ==============

    gateway = McpGateway(registry)
    if config.enable_oauth:
        gate = BearerGate(tokens, realm=config.realm, metadata_url=config.protected_resource_metadata_url)
        mcp_endpoint = MCPOAuthMiddleware(gateway, gate=gate)
    else:
        logger.warning("[STARTUP] OAuth disabled: the MCP endpoint accepts unauthenticated requests")
        mcp_endpoint = gateway
    app.add_route(config.mcp_path, mcp_endpoint, methods=["GET", "POST", "DELETE"])

    # ============== OAuth endpoints ==============

    if config.enable_oauth:
        authorization = AuthorizationService(
            tokens,
            clients,
            user_id=config.demo_user_id,
            code_ttl=config.auth_code_ttl,
            strict_redirect_uris=config.strict_redirect_uris,
            clock=clock,
        )
        token_exchange = TokenExchangeService(
            tokens,
            access_token_ttl=config.access_token_ttl,
            refresh_token_ttl=config.refresh_token_ttl,
            clock=clock,
        )
        app.include_router(create_oauth_router(
            server_url,
            config.mcp_path,
            clients,
            authorization,
            token_exchange,
            user_email=config.demo_user_email,
        ))

    # ============== Server Info Endpoints ==============

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "mcp-session-gateway",
            "sessions": len(registry),
        }

    @app.get("/")
    async def root():
        """Root endpoint with server info."""
        response = {
            "name": "MCP Session Gateway",
            "version": VERSION,
            "transport": "streamable-http",
            "endpoints": {"streamable_http": config.mcp_path},
            "oauth_enabled": config.enable_oauth,
        }
        if config.enable_oauth:
            response["oauth"] = {
                "protected_resource": config.protected_resource_metadata_url,
                "authorization_server": f"{server_url}/.well-known/oauth-authorization-server",
            }
        return response

    return app

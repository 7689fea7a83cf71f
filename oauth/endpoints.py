"""OAuth 2.1 endpoints for MCP clients.

This module contains all OAuth-related endpoints:
- Discovery metadata (/.well-known/*)
- Dynamic client registration (/register)
- Authorization flow (/authorize, consent page and decision)
- Token endpoint (/token)
- Landing page for the demo client (/callback)

Handlers only parse HTTP input and render output; the flow itself lives in
``oauth.authorization`` and ``oauth.token_exchange``. Errors are raised as
``GatewayError`` subclasses and rendered by the application's exception
handler.
"""

import html
import logging
import uuid

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from oauth.authorization import AuthorizationService
from oauth.errors import InvalidClientMetadata, InvalidRequest
from oauth.models import Client
from oauth.stores import ClientStore
from oauth.templates import CALLBACK_FIELD, CALLBACK_PAGE, CONSENT_PAGE
from oauth.token_exchange import TokenExchangeService

logger = logging.getLogger(__name__)

SCOPES_SUPPORTED: list[str] = []
TOKEN_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def authorization_server_metadata(server_url: str) -> dict:
    """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
    return {
        "issuer": server_url,
        "authorization_endpoint": f"{server_url}/authorize",
        "token_endpoint": f"{server_url}/token",
        "registration_endpoint": f"{server_url}/register",
        "scopes_supported": SCOPES_SUPPORTED,
        "response_types_supported": ["code"],
        "response_modes_supported": ["query"],
        "grant_types_supported": ["authorization_code", "refresh_token"],
        "token_endpoint_auth_methods_supported": ["none", "client_secret_post"],
        "code_challenge_methods_supported": ["S256"],
    }


def protected_resource_metadata(server_url: str) -> dict:
    """OAuth 2.0 Protected Resource Metadata (RFC 9728)."""
    return {
        "resource": server_url,
        "authorization_servers": [server_url],
        "scopes_supported": SCOPES_SUPPORTED,
        "bearer_methods_supported": ["header", "body"],
        "resource_documentation": f"{server_url}/",
    }


def parse_client_metadata(data, server_url: str) -> Client:
    """Validate an RFC 7591 registration payload and build a new client."""
    if not isinstance(data, dict):
        raise InvalidClientMetadata("Client metadata must be a JSON object")

    redirect_uris = data.get("redirect_uris", [f"{server_url}/callback"])
    if not isinstance(redirect_uris, list) or not redirect_uris:
        raise InvalidClientMetadata("redirect_uris must be a non-empty list")
    if not all(isinstance(uri, str) for uri in redirect_uris):
        raise InvalidClientMetadata("redirect_uris must contain strings")

    client_name = data.get("client_name")
    try:
        return Client(
            client_id=f"mcp_{uuid.uuid4()}",
            redirect_uris=tuple(redirect_uris),
            client_name=client_name,
        )
    except ValueError as e:
        raise InvalidClientMetadata(str(e)) from None


def render_consent(auth_request, client_name: str, user_email: str) -> str:
    return CONSENT_PAGE.format(
        client_id=html.escape(auth_request.client_id),
        client_name=html.escape(client_name),
        user_email=html.escape(user_email),
        redirect_uri=html.escape(auth_request.redirect_uri),
        code_challenge=html.escape(auth_request.code_challenge),
        code_challenge_method=html.escape(auth_request.code_challenge_method),
        state=html.escape(auth_request.state),
        scope=html.escape(auth_request.scope or "default"),
    )


def render_callback(params: dict) -> str:
    if params.get("error"):
        title = "Authorization Failed"
        message = "The authorization request was not approved."
        labels = ("error", "error_description", "state")
    else:
        title = "Authorization Complete"
        message = "Copy the code below into your client to finish signing in."
        labels = ("code", "state")
    fields = "\n".join(
        CALLBACK_FIELD.format(label=label, value=html.escape(params[label]))
        for label in labels
        if params.get(label)
    )
    return CALLBACK_PAGE.format(title=title, message=message, fields=fields)


async def read_token_params(request: Request) -> dict:
    """Token requests may be form-encoded (RFC 6749) or JSON."""
    content_type = request.headers.get("content-type", "")
    try:
        if "application/json" in content_type:
            data = await request.json()
        else:
            data = dict(await request.form())
    except ValueError:
        raise InvalidRequest("Could not parse token request body") from None
    if not isinstance(data, dict):
        raise InvalidRequest("Token request body must be an object")
    return {key: value for key, value in data.items() if isinstance(value, str)}


def create_oauth_router(
    server_url: str,
    mcp_path: str,
    clients: ClientStore,
    authorization: AuthorizationService,
    token_exchange: TokenExchangeService,
    user_email: str,
) -> APIRouter:
    """Build the router for the authorization server endpoints."""
    router = APIRouter(tags=["oauth"])

    # ============== OAuth 2.1 Discovery Endpoints ==============

    async def oauth_authorization_server():
        return authorization_server_metadata(server_url)

    async def oauth_protected_resource():
        return protected_resource_metadata(server_url)

    # Path-suffixed forms are what RFC 8414/9728 aware clients ask for first
    for path in ("/.well-known/oauth-authorization-server", f"/.well-known/oauth-authorization-server{mcp_path}"):
        router.add_api_route(path, oauth_authorization_server, methods=["GET"])
    for path in ("/.well-known/oauth-protected-resource", f"/.well-known/oauth-protected-resource{mcp_path}"):
        router.add_api_route(path, oauth_protected_resource, methods=["GET"])

    # ============== Client Registration ==============

    @router.post("/register")
    async def register_client(request: Request):
        """OAuth 2.0 Dynamic Client Registration (RFC 7591)."""
        try:
            data = await request.json()
        except ValueError:
            raise InvalidClientMetadata("Request body must be valid JSON") from None

        client = parse_client_metadata(data, server_url)
        clients.put(client)
        logger.info(f"[REGISTER] Registered client {client.client_id} ({client.client_name or 'unnamed'})")

        body = {
            "client_id": client.client_id,
            "client_id_issued_at": client.issued_at,
            "redirect_uris": list(client.redirect_uris),
            "grant_types": list(client.grant_types),
            "response_types": ["code"],
            "token_endpoint_auth_method": "none",
        }
        if client.client_name:
            body["client_name"] = client.client_name
        return JSONResponse(body, status_code=201)

    # ============== Authorization Flow ==============

    @router.get("/authorize")
    async def authorize(request: Request):
        """Validate the request and show the consent page."""
        auth_request = authorization.begin(dict(request.query_params))
        client = clients.get(auth_request.client_id)
        client_name = (client.client_name if client else None) or auth_request.client_id
        return HTMLResponse(render_consent(auth_request, client_name, user_email))

    @router.post("/authorize")
    async def authorize_decision(request: Request):
        """Apply the consent decision and redirect back to the client."""
        form = await request.form()
        params = {key: value for key, value in form.items() if isinstance(value, str)}
        auth_request = authorization.begin(params)
        outcome = authorization.decide(auth_request, approved=params.get("action") == "allow")
        return RedirectResponse(url=outcome.redirect_url, status_code=302)

    @router.get("/callback")
    async def callback(request: Request):
        """Landing page for the pre-registered demo client."""
        return HTMLResponse(render_callback(dict(request.query_params)))

    # ============== Token Endpoint ==============

    @router.post("/token")
    async def token(request: Request):
        """OAuth 2.0 Token Endpoint."""
        params = await read_token_params(request)
        logger.debug(f"[TOKEN] grant_type: {params.get('grant_type')}, client_id: {params.get('client_id')}")
        response = token_exchange.handle(params)
        return JSONResponse(response.to_payload(), headers=TOKEN_HEADERS)

    return router

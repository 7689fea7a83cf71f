"""MCP Session Gateway - ASGI entry point.

It serves:
- MCP tools (slugify, countdown) via tools.py
- MCP protocol endpoint via Streamable HTTP (/mcp), one transport per session
- OAuth 2.1 + PKCE authorization server for MCP clients (oauth/)

Run with ``uvicorn main:app`` or ``python main.py``.
"""
import logging

from config import load_config, load_env_files
from logging_config import setup_logging
from server import create_app

load_env_files()

config = load_config()
setup_logging(service_name="mcp-session-gateway", level=config.log_level, fmt=config.log_format)
logger = logging.getLogger(__name__)

app = create_app(config)


# ============== Main Entry Point ==============

if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting MCP session gateway on {config.host}:{config.port}")
    logger.info(f"Streamable HTTP endpoint: {config.mcp_path}")
    uvicorn.run(app, host=config.host, port=config.port)

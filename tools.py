"""MCP Tools for mcp-session-gateway.

This module defines the MCP tools (slugify, countdown) that are exposed to
clients over each session. They exist to give the session transport
something to serve; replace them with real tools as needed.
"""

import logging
import re
import unicodedata

import anyio
from fastmcp import Context, FastMCP

logger = logging.getLogger(__name__)

MAX_COUNTDOWN_SECONDS = 15

# Create the FastMCP server instance
mcp = FastMCP("mcp-session-gateway")


def create_slug(text: str) -> str:
    """Lowercase ``text`` and join its ASCII words with hyphens."""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


@mcp.tool()
def slugify(text: str) -> str:
    """Convert text to a URL-friendly slug.

    Args:
        text: The text to convert

    Returns:
        The slug, e.g. "Hello World!" -> "hello-world"
    """
    logger.info(f"[TOOL] slugify invoked, text length: {len(text)}")
    return create_slug(text)


@mcp.tool()
async def countdown(seconds: int, ctx: Context) -> str:
    """Count down from ``seconds`` to zero, one notification per second.

    Args:
        seconds: Starting value, between 1 and 15

    Returns:
        "Blastoff!" once the countdown reaches zero
    """
    if not 1 <= seconds <= MAX_COUNTDOWN_SECONDS:
        raise ValueError(f"seconds must be between 1 and {MAX_COUNTDOWN_SECONDS}")

    logger.info(f"[TOOL] countdown invoked, seconds: {seconds}")
    for remaining in range(seconds, 0, -1):
        await ctx.info(f"{remaining}...")
        await ctx.report_progress(progress=seconds - remaining, total=seconds)
        await anyio.sleep(1)
    await ctx.report_progress(progress=seconds, total=seconds)
    return "Blastoff!"

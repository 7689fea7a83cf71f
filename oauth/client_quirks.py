"""Known client quirks in how 401 challenges are parsed.

RFC 9728 names the challenge parameter ``resource_metadata``. Some clients
only understand ``resource_metadata_url``, and at least one breaks when both
are present, so exactly one is chosen per request. New quirks are added to
``CLIENT_QUIRKS``; nothing else needs to change.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

DEFAULT_METADATA_PARAM = "resource_metadata"
LEGACY_METADATA_PARAM = "resource_metadata_url"


@dataclass(frozen=True)
class ClientQuirk:
    name: str
    matches: Callable[[str, Optional[str]], bool]
    metadata_param: str


CLIENT_QUIRKS: tuple[ClientQuirk, ...] = (
    # VS Code's MCP client issues requests through Node's fetch
    ClientQuirk(
        name="node-user-agent",
        matches=lambda user_agent, client_name: user_agent == "node",
        metadata_param=LEGACY_METADATA_PARAM,
    ),
    ClientQuirk(
        name="vscode-client-info",
        matches=lambda user_agent, client_name: client_name == "Visual Studio Code",
        metadata_param=LEGACY_METADATA_PARAM,
    ),
)


def resource_metadata_param(
    user_agent: Optional[str],
    client_name: Optional[str] = None,
    quirks: Sequence[ClientQuirk] = CLIENT_QUIRKS,
) -> str:
    """Pick the challenge parameter name for this caller.

    The first matching quirk wins; otherwise the RFC 9728 name is used.
    """
    user_agent = (user_agent or "").strip()
    for quirk in quirks:
        if quirk.matches(user_agent, client_name):
            return quirk.metadata_param
    return DEFAULT_METADATA_PARAM

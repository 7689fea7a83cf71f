"""Unit tests for the challenge-parameter lookup table."""

from __future__ import annotations

import pytest

from oauth.client_quirks import ClientQuirk, resource_metadata_param


@pytest.mark.parametrize(
    "user_agent, client_name, expected",
    [
        (None, None, "resource_metadata"),
        ("curl/8.5.0", None, "resource_metadata"),
        ("node", None, "resource_metadata_url"),
        ("node-fetch/1.0", None, "resource_metadata"),
        ("Mozilla/5.0", "Visual Studio Code", "resource_metadata_url"),
        ("Mozilla/5.0", "Claude Desktop", "resource_metadata"),
    ],
)
def test_builtin_quirks(user_agent, client_name, expected) -> None:
    assert resource_metadata_param(user_agent, client_name) == expected


def test_quirks_are_additive() -> None:
    custom = (
        ClientQuirk(
            name="acme",
            matches=lambda ua, name: ua.startswith("acme/"),
            metadata_param="resource_metadata_url",
        ),
    )
    assert resource_metadata_param("acme/2.0", None, custom) == "resource_metadata_url"
    assert resource_metadata_param("node", None, custom) == "resource_metadata"

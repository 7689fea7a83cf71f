"""Unit tests for the demo MCP tools."""

from __future__ import annotations

import pytest

from tools import create_slug


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Hello World!", "hello-world"),
        ("  Multiple   spaces  ", "multiple-spaces"),
        ("Crème Brûlée", "creme-brulee"),
        ("already-a-slug", "already-a-slug"),
        ("!!!", ""),
    ],
)
def test_create_slug(text: str, expected: str) -> None:
    assert create_slug(text) == expected

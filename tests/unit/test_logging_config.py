"""Unit tests for logging setup and secret masking."""

from __future__ import annotations

import json
import logging

import pytest

from logging_config import JSONFormatter, mask_secret, setup_logging


def test_mask_secret() -> None:
    assert mask_secret("abcdefghijkl") == "abcdef****"
    assert mask_secret("") == "-"
    assert mask_secret(None) == "-"


def test_json_formatter_extracts_tag() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "[TOKEN] issued %s", ("abc",), None)
    entry = json.loads(JSONFormatter("svc").format(record))
    assert entry["service"] == "svc"
    assert entry["tag"] == "TOKEN"
    assert entry["message"] == "issued abc"
    assert entry["level"] == "INFO"


def test_setup_logging_rejects_unknown_level() -> None:
    with pytest.raises(ValueError):
        setup_logging(level="LOUD")


def test_setup_logging_installs_single_handler() -> None:
    root = setup_logging(level="debug", fmt="json")
    try:
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers.clear()
        root.setLevel(logging.WARNING)

"""Unit tests for JSON-RPC body inspection."""

from __future__ import annotations

import json

from sessions import jsonrpc

INIT = {"jsonrpc": "2.0", "id": 7, "method": "initialize", "params": {"clientInfo": {"name": "Visual Studio Code"}}}


def test_parse_body() -> None:
    assert jsonrpc.parse_body(json.dumps(INIT).encode()) == INIT
    assert jsonrpc.parse_body(b"") is None
    assert jsonrpc.parse_body(b"{not json") is None
    assert jsonrpc.parse_body(b"\xff\xfe") is None


def test_initialize_detection() -> None:
    assert jsonrpc.is_initialize_request(INIT)
    assert not jsonrpc.is_initialize_request([{"jsonrpc": "2.0", "method": "ping"}, INIT])
    assert not jsonrpc.is_initialize_request([INIT])
    assert not jsonrpc.is_initialize_request({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert not jsonrpc.is_initialize_request(None)
    assert not jsonrpc.is_initialize_request("initialize")


def test_client_name() -> None:
    assert jsonrpc.client_name(INIT) == "Visual Studio Code"
    assert jsonrpc.client_name({"method": "initialize", "params": {"clientInfo": "bad"}}) is None
    assert jsonrpc.client_name({"method": "tools/list", "params": {"clientInfo": {"name": "x"}}}) is None


def test_request_id() -> None:
    assert jsonrpc.request_id(INIT) == 7
    assert jsonrpc.request_id({"id": "abc"}) == "abc"
    assert jsonrpc.request_id({"id": True}) is None
    assert jsonrpc.request_id([INIT]) is None
    assert jsonrpc.request_id(None) is None


def test_error_envelope() -> None:
    assert jsonrpc.error_envelope(-32001, "nope", 3) == {
        "jsonrpc": "2.0",
        "error": {"code": -32001, "message": "nope"},
        "id": 3,
    }

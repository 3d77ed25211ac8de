"""Tests for the chat UI helpers."""

from __future__ import annotations

import json

import httpx
import pytest

pytest.importorskip("gradio")

from caorag.ui.app import APIError, CaoQueryClient, create_query_handler, to_history  # noqa: E402


def test_to_history_accepts_messages_and_pairs() -> None:
    messages = [
        {"role": "user", "content": "Q1"},
        {"role": "assistant", "content": "A1"},
        {"role": "system", "content": "ignored"},
    ]
    pairs = [("Q1", "A1"), ("Q2", None)]

    assert to_history(messages) == [{"role": "user", "content": "Q1"}, {"role": "assistant", "content": "A1"}]
    assert to_history(pairs) == [
        {"role": "user", "content": "Q1"},
        {"role": "assistant", "content": "A1"},
        {"role": "user", "content": "Q2"},
    ]


def test_handler_sends_history_and_renders_sources() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(
            200,
            json={"answer": "Antwoord.", "sources": [{"fileName": "a.pdf", "uri": "u-a"}]},
        )

    client = CaoQueryClient(base_url="http://api.test", transport=httpx.MockTransport(handler))
    handle = create_query_handler(client)

    reply = handle("Q2", [{"role": "user", "content": "Q1"}], "cao-documents")

    assert captured == {
        "query": "Q2",
        "storeName": "cao-documents",
        "history": [{"role": "user", "content": "Q1"}],
    }
    assert reply.startswith("Antwoord.")
    assert "[a.pdf](u-a)" in reply


def test_client_surfaces_error_field() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404, json={"error": "Store not found: x"}))
    client = CaoQueryClient(base_url="http://api.test", transport=transport)

    with pytest.raises(APIError, match="Store not found"):
        client.query("Q", "x")

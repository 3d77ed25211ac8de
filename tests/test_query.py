"""Tests for the conversation query engine."""

from __future__ import annotations

import pytest

from caorag.errors import StoreNotFoundError, TransportError
from caorag.models import ConversationTurn, Role
from caorag.services.query import PromptBuilder, QueryService


def test_prompt_includes_history_in_order() -> None:
    history = [
        ConversationTurn(role=Role.USER, content="Q1"),
        ConversationTurn(role=Role.ASSISTANT, content="A1"),
    ]

    prompt = PromptBuilder().build("Q2", history)

    assert "user: Q1" in prompt
    assert "assistant: A1" in prompt
    assert prompt.index("user: Q1") < prompt.index("assistant: A1")
    assert prompt.startswith("Previous conversation:\n")
    assert prompt.endswith("Q2")


def test_prompt_without_history_is_question() -> None:
    assert PromptBuilder().build("Wat is het minimumloon?", []) == "Wat is het minimumloon?"


def test_query_scopes_generation_to_resolved_store(gateway, store, response_factory, file_chunk_factory) -> None:
    gateway.response = response_factory(parts=["Antwoord"], chunks=[file_chunk_factory("a.pdf")])
    service = QueryService(gateway, "gemini-2.5-flash")

    result = service.query("Vraag?", "cao-documents")

    assert gateway.generate_calls == [("gemini-2.5-flash", "Vraag?", [store.id])]
    assert result.answer_text == "Antwoord"
    assert [source.file_name for source in result.sources] == ["a.pdf"]


def test_query_threads_history_into_prompt(gateway, store) -> None:
    service = QueryService(gateway, "gemini-2.5-flash")

    service.query("Q2", "cao-documents", [ConversationTurn(role=Role.USER, content="Q1")])

    _, prompt, _ = gateway.generate_calls[0]
    assert "user: Q1" in prompt
    assert prompt.endswith("Q2")


def test_unknown_store_raises_not_found(gateway) -> None:
    service = QueryService(gateway, "gemini-2.5-flash")

    with pytest.raises(StoreNotFoundError):
        service.query("Vraag?", "missing")
    assert gateway.generate_calls == []


def test_first_matching_store_wins(gateway) -> None:
    first = gateway.create_store("dup")
    gateway.create_store("dup")

    QueryService(gateway, "m").query("q", "dup")

    assert gateway.generate_calls[0][2] == [first.id]


def test_generation_failure_is_wrapped_with_context(gateway, store) -> None:
    gateway.fail_generate = True
    service = QueryService(gateway, "gemini-2.5-flash")

    with pytest.raises(TransportError) as excinfo:
        service.query("Vraag?", "cao-documents")

    assert "cao-documents" in str(excinfo.value)
    assert "quota exceeded" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, TransportError)


def test_store_lookup_failure_is_wrapped_with_context(gateway, store) -> None:
    gateway.fail_list_stores = True
    service = QueryService(gateway, "gemini-2.5-flash")

    with pytest.raises(TransportError) as excinfo:
        service.query("Vraag?", "cao-documents")

    assert "cao-documents" in str(excinfo.value)
    assert "503" in str(excinfo.value)
    assert gateway.generate_calls == []

"""Tests for the command-line entry points."""

from __future__ import annotations

import pytest

from caorag import cli
from caorag.config import Settings
from caorag.models import Citation, QueryResult, Source, SourceDocument


@pytest.fixture
def patched(monkeypatch, gateway, source):
    settings = Settings(gemini_api_key="test-key", environment="test")
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli, "build_gateway", lambda _settings: gateway)
    monkeypatch.setattr(cli, "CaoSearchClient", lambda _config: source)
    return settings


def test_format_result_lists_sources_and_citations() -> None:
    result = QueryResult(
        answer_text="Antwoord.",
        sources=(SourceDocument(file_name="a.pdf", uri="u-a"), SourceDocument(file_name="b.pdf", uri="u-b")),
        citations=(
            Citation(start_index=0, end_index=8, sources=(Source(title="a.pdf", uri="u-a"),)),
            Citation(start_index=3, end_index=5),
        ),
    )

    text = cli.format_result(result)

    assert text.startswith("=== Answer ===\nAntwoord.")
    assert "=== Sources (2) ===\n1. a.pdf\n2. b.pdf" in text
    assert "1. Characters 0-8 - a.pdf" in text
    assert "2. Characters 3-5" in text


def test_uploader_reports_counts(patched, gateway, source, capsys) -> None:
    source.urls = ["https://x/a.pdf", "https://x/"]

    assert cli.upload_main(["--store", "cao-documents", "--jc", "1000"]) == 0
    assert cli.upload_main(["--store", "cao-documents", "--jc", "1000"]) == 0

    out = capsys.readouterr().out
    assert "2 new documents uploaded, 0 documents skipped" in out
    assert "0 new documents uploaded, 2 documents skipped" in out
    assert source.searched == [1000, 1000]


def test_uploader_all_searches_without_filter(patched, source) -> None:
    assert cli.upload_main(["--all"]) == 0
    assert source.searched == [None]


def test_querier_reports_missing_store(patched, capsys) -> None:
    assert cli.query_main(["Wat", "is", "het", "minimumloon?"]) == 1
    assert "not found" in capsys.readouterr().err


def test_querier_prints_answer(patched, gateway, response_factory, file_chunk_factory, capsys) -> None:
    gateway.create_store("cao-documents")
    gateway.response = response_factory(parts=["Antwoord."], chunks=[file_chunk_factory("a.pdf")])

    assert cli.query_main(["Wat", "is", "het", "minimumloon?"]) == 0

    out = capsys.readouterr().out
    assert "Querying: Wat is het minimumloon?" in out
    assert "1. a.pdf" in out
    assert gateway.generate_calls[0][1] == "Wat is het minimumloon?"


def test_missing_credential_exits_non_zero(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "get_settings", lambda: Settings(gemini_api_key=None, environment="test"))

    assert cli.query_main(["vraag"]) == 1
    assert "GEMINI_API_KEY" in capsys.readouterr().err

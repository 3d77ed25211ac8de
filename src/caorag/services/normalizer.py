"""Flatten grounded-generation responses into :class:`QueryResult` records.

The SDK response is deeply nested and nearly every field is optional. Fields
are read with ``getattr`` so a missing branch yields an empty collection
instead of an exception, which also lets tests feed plain namespaces.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from caorag.errors import MalformedResponseError
from caorag.models import (
    Citation,
    FileChunk,
    GroundingChunk,
    QueryResult,
    Source,
    SourceDocument,
    WebChunk,
)


def _items(value: Any) -> Sequence[Any]:
    return list(value) if value else []


def _citation(raw: Any) -> Citation:
    sources: tuple[Source, ...] = ()
    uri = getattr(raw, "uri", None)
    if uri:
        sources = (Source(title=getattr(raw, "title", None) or "", uri=uri),)
    start = getattr(raw, "start_index", None) or 0
    end = getattr(raw, "end_index", None) or 0
    return Citation(
        start_index=start,
        end_index=max(start, end),
        sources=sources,
    )


def _grounding_chunk(raw: Any) -> GroundingChunk:
    web = None
    file = None
    raw_web = getattr(raw, "web", None)
    if raw_web is not None:
        web = WebChunk(uri=getattr(raw_web, "uri", None) or "", title=getattr(raw_web, "title", None) or "")
    context = getattr(raw, "retrieved_context", None)
    if context is not None and getattr(context, "uri", None):
        file = FileChunk(file_name=getattr(context, "title", None) or "", uri=context.uri)
    return GroundingChunk(web=web, file=file)


def unique_sources(chunks: Iterable[GroundingChunk]) -> tuple[SourceDocument, ...]:
    """Return the first file chunk per distinct file name, in order."""

    seen: set[str] = set()
    ordered: list[SourceDocument] = []
    for chunk in chunks:
        if chunk.file is None or chunk.file.file_name in seen:
            continue
        seen.add(chunk.file.file_name)
        ordered.append(SourceDocument(file_name=chunk.file.file_name, uri=chunk.file.uri))
    return tuple(ordered)


def normalize_response(raw: Any) -> QueryResult:
    if raw is None:
        raise MalformedResponseError("generation returned no response")
    parts: list[str] = []
    citations: list[Citation] = []
    chunks: list[GroundingChunk] = []
    queries: list[str] = []

    # Every candidate contributes, not just the first.
    for candidate in _items(getattr(raw, "candidates", None)):
        content = getattr(candidate, "content", None)
        for part in _items(getattr(content, "parts", None)):
            text = getattr(part, "text", None)
            if text:
                parts.append(text)

        citation_metadata = getattr(candidate, "citation_metadata", None)
        for raw_citation in _items(getattr(citation_metadata, "citations", None)):
            citations.append(_citation(raw_citation))

        grounding = getattr(candidate, "grounding_metadata", None)
        if grounding is None:
            continue
        for raw_chunk in _items(getattr(grounding, "grounding_chunks", None)):
            chunks.append(_grounding_chunk(raw_chunk))
        queries.extend(q for q in _items(getattr(grounding, "web_search_queries", None)) if q)

    return QueryResult(
        answer_text="".join(parts),
        sources=unique_sources(chunks),
        citations=tuple(citations),
        grounding_chunks=tuple(chunks),
        web_search_queries=tuple(queries),
    )

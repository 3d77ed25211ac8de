"""Shared domain models used across the caorag pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping

SOURCE_URL_METADATA_KEY = "source_url"


@dataclass(frozen=True)
class CandidateDocument:
    """Document advertised by the document source, not yet fetched."""

    source_url: str


@dataclass(frozen=True)
class Store:
    """Externally hosted store usable as a retrieval scope."""

    id: str
    display_name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class StoredDocument:
    """Document uploaded into a store."""

    name: str
    display_name: str
    store_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    @property
    def provenance_url(self) -> str | None:
        return self.metadata.get(SOURCE_URL_METADATA_KEY) or None


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """One prior message of a conversation, oldest first in a history."""

    role: Role
    content: str


@dataclass(frozen=True)
class Source:
    title: str
    uri: str


@dataclass(frozen=True)
class Citation:
    """Character span of the answer text attributed to zero or more sources."""

    start_index: int
    end_index: int
    sources: tuple[Source, ...] = ()


@dataclass(frozen=True)
class WebChunk:
    uri: str
    title: str


@dataclass(frozen=True)
class FileChunk:
    file_name: str
    uri: str


@dataclass(frozen=True)
class GroundingChunk:
    """Evidence backing an answer; web-origin, file-origin, or empty when unrecognised."""

    web: WebChunk | None = None
    file: FileChunk | None = None

    @property
    def is_empty(self) -> bool:
        return self.web is None and self.file is None


@dataclass(frozen=True)
class SourceDocument:
    """Distinct ingested file that contributed to an answer."""

    file_name: str
    uri: str


@dataclass(frozen=True)
class QueryResult:
    """Normalized outcome of one grounded query."""

    answer_text: str
    sources: tuple[SourceDocument, ...] = ()
    citations: tuple[Citation, ...] = ()
    grounding_chunks: tuple[GroundingChunk, ...] = ()
    web_search_queries: tuple[str, ...] = ()


@dataclass(frozen=True)
class IngestionReport:
    """Aggregate counts for one ingestion run."""

    uploaded: int = 0
    skipped: int = 0
    failed: int = 0

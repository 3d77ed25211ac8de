"""Pydantic models for the caorag HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from caorag.models import ConversationTurn, QueryResult, Role, Store, StoredDocument


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryMessage(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    role: Role = Field(..., description="Author of the message: user or assistant")
    content: str = Field(..., description="Message text")

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(role=self.role, content=self.content)


class QueryRequest(CamelModel):
    query: str = Field(default="", description="End-user question to answer")
    store_name: str = Field(default="", description="Display name of the store to search")
    history: Optional[List[HistoryMessage]] = Field(
        default=None,
        description="Prior turns of the conversation, oldest first",
    )

    def turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(message.to_turn() for message in self.history or [])


class SourceModel(CamelModel):
    title: str
    uri: str


class CitationModel(CamelModel):
    start_index: int
    end_index: int
    sources: List[SourceModel]


class WebChunkModel(CamelModel):
    uri: str
    title: str


class FileChunkModel(CamelModel):
    file_name: str
    uri: str


class GroundingChunkModel(CamelModel):
    web: Optional[WebChunkModel] = None
    file: Optional[FileChunkModel] = None


class GroundingSupportModel(CamelModel):
    grounding_chunks: List[GroundingChunkModel]
    web_search_queries: List[str] = Field(default_factory=list)


class SourceDocumentModel(CamelModel):
    file_name: str
    uri: str


class QueryResponse(CamelModel):
    answer: str
    sources: List[SourceDocumentModel]
    citations: Optional[List[CitationModel]] = None
    grounding_support: Optional[GroundingSupportModel] = None

    @classmethod
    def from_result(cls, result: QueryResult) -> "QueryResponse":
        citations = [
            CitationModel(
                start_index=citation.start_index,
                end_index=citation.end_index,
                sources=[SourceModel(title=s.title, uri=s.uri) for s in citation.sources],
            )
            for citation in result.citations
        ]
        grounding = None
        if result.grounding_chunks or result.web_search_queries:
            grounding = GroundingSupportModel(
                grounding_chunks=[
                    GroundingChunkModel(
                        web=WebChunkModel(uri=chunk.web.uri, title=chunk.web.title) if chunk.web else None,
                        file=FileChunkModel(file_name=chunk.file.file_name, uri=chunk.file.uri) if chunk.file else None,
                    )
                    for chunk in result.grounding_chunks
                ],
                web_search_queries=list(result.web_search_queries),
            )
        return cls(
            answer=result.answer_text,
            sources=[SourceDocumentModel(file_name=s.file_name, uri=s.uri) for s in result.sources],
            citations=citations or None,
            grounding_support=grounding,
        )


class StoreModel(CamelModel):
    name: str = Field(..., description="Opaque store resource name")
    display_name: str
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

    @classmethod
    def from_store(cls, store: Store) -> "StoreModel":
        return cls(
            name=store.id,
            display_name=store.display_name,
            create_time=store.created_at,
            update_time=store.updated_at,
        )


class DocumentModel(CamelModel):
    name: str
    display_name: str
    source_url: Optional[str] = None
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None
    custom_metadata: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: StoredDocument) -> "DocumentModel":
        return cls(
            name=document.name,
            display_name=document.display_name,
            source_url=document.provenance_url,
            create_time=document.created_at,
            update_time=document.updated_at,
            custom_metadata=dict(document.metadata),
        )


class ErrorResponse(BaseModel):
    error: str

"""Shared fakes for the gateway and document source."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Mapping, Sequence

import pytest

from caorag.errors import TransportError
from caorag.models import Store, StoredDocument


class FakeGateway:
    """In-memory stand-in for the File Search gateway."""

    def __init__(self) -> None:
        self.stores: list[Store] = []
        self.documents: dict[str, list[StoredDocument]] = {}
        self.uploads: list[tuple[str, str, Mapping[str, str]]] = []
        self.generate_calls: list[tuple[str, str, list[str]]] = []
        self.response: Any = SimpleNamespace(candidates=[])
        self.fail_listing = False
        self.fail_list_stores = False
        self.fail_uploads: set[str] = set()
        self.fail_generate = False

    def create_store(self, display_name: str) -> Store:
        store = Store(id=f"fileSearchStores/{display_name}-{len(self.stores) + 1}", display_name=display_name)
        self.stores.append(store)
        self.documents[store.id] = []
        return store

    def list_stores(self) -> Sequence[Store]:
        if self.fail_list_stores:
            raise TransportError("failed to list stores: 503")
        return list(self.stores)

    def list_documents(self, store_id: str) -> Sequence[StoredDocument]:
        if self.fail_listing:
            raise TransportError("failed to list documents: boom")
        return list(self.documents.get(store_id, []))

    def upload(
        self,
        store_id: str,
        data: bytes,
        display_name: str,
        metadata: Mapping[str, str] | None = None,
    ) -> StoredDocument:
        if display_name in self.fail_uploads:
            raise TransportError(f"failed to upload document: {display_name}")
        document = StoredDocument(
            name=f"{store_id}/documents/{display_name}",
            display_name=display_name,
            store_id=store_id,
            metadata=dict(metadata or {}),
        )
        self.documents.setdefault(store_id, []).append(document)
        self.uploads.append((store_id, display_name, dict(metadata or {})))
        return document

    def generate_grounded(self, model_id: str, prompt: str, store_ids: Sequence[str]) -> Any:
        self.generate_calls.append((model_id, prompt, list(store_ids)))
        if self.fail_generate:
            raise TransportError("failed to generate content: quota exceeded")
        return self.response

    def display_names(self, store_id: str) -> list[str]:
        return [document.display_name for document in self.documents.get(store_id, [])]


class FakeSource:
    """Document source serving canned URLs and bytes."""

    def __init__(self, urls: Sequence[str] = ()) -> None:
        self.urls = list(urls)
        self.fetched: list[str] = []
        self.failing: set[str] = set()
        self.searched: list[int | None] = []

    def search(self, category: int | None = None) -> Sequence[str]:
        self.searched.append(category)
        return list(self.urls)

    def fetch(self, url: str) -> bytes:
        self.fetched.append(url)
        if url in self.failing:
            raise TransportError(f"unexpected status code downloading {url}: 500")
        return f"%PDF-1.4 {url}".encode()

    def close(self) -> None:
        pass


def make_response(
    parts: Sequence[str] = (),
    citations: Sequence[Any] = (),
    chunks: Sequence[Any] = (),
    queries: Sequence[str] = (),
) -> SimpleNamespace:
    """Build a response shaped like the SDK's ``GenerateContentResponse``."""

    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=[SimpleNamespace(text=text) for text in parts]),
        citation_metadata=SimpleNamespace(citations=list(citations)),
        grounding_metadata=SimpleNamespace(grounding_chunks=list(chunks), web_search_queries=list(queries)),
    )
    return SimpleNamespace(candidates=[candidate])


def file_chunk(title: str, uri: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(web=None, retrieved_context=SimpleNamespace(title=title, uri=uri or f"fileSearchStores/s/{title}"))


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store(gateway: FakeGateway) -> Store:
    return gateway.create_store("cao-documents")


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def file_chunk_factory():
    return file_chunk

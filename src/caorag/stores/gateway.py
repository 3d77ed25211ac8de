"""Typed gateway over the Gemini File Search store and generation API."""

from __future__ import annotations

import io
import time
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from caorag.errors import ConfigurationError, StoreNotFoundError, TransportError
from caorag.metrics.observability import get_logger
from caorag.models import Store, StoredDocument

PDF_MIME_TYPE = "application/pdf"

_SDK_ERRORS = (genai_errors.APIError, httpx.HTTPError)


class StoreGateway(Protocol):
    """Remote store, document and grounded-generation capability."""

    def create_store(self, display_name: str) -> Store:
        """Create a new store."""

    def list_stores(self) -> Sequence[Store]:
        """Return every store visible to the credential."""

    def list_documents(self, store_id: str) -> Sequence[StoredDocument]:
        """Return the documents held by ``store_id``."""

    def upload(
        self,
        store_id: str,
        data: bytes,
        display_name: str,
        metadata: Mapping[str, str] | None = None,
    ) -> StoredDocument:
        """Upload ``data`` into ``store_id``."""

    def generate_grounded(self, model_id: str, prompt: str, store_ids: Sequence[str]) -> Any:
        """Return the raw generation response for ``prompt`` grounded on ``store_ids``."""


def get_store_by_name(gateway: StoreGateway, display_name: str) -> Store:
    """Resolve a store by display name; the first match wins."""

    for store in gateway.list_stores():
        if store.display_name == display_name:
            return store
    raise StoreNotFoundError(display_name)


@dataclass(frozen=True)
class GatewayConfig:
    api_key: str | None = None
    timeout_ms: int | None = None
    wait_for_upload: bool = True
    poll_interval_seconds: float = 2.0
    mime_type: str = PDF_MIME_TYPE


class GeminiFileSearchGateway:
    """Gateway backed by the ``google-genai`` client."""

    def __init__(self, config: GatewayConfig, *, client: genai.Client | None = None) -> None:
        if not config.api_key:
            raise ConfigurationError("API key is required")
        self._config = config
        if client is None:
            http_options = genai_types.HttpOptions(timeout=config.timeout_ms) if config.timeout_ms else None
            client = genai.Client(api_key=config.api_key, http_options=http_options)
        self._client = client
        self._logger = get_logger("gateway")

    def create_store(self, display_name: str) -> Store:
        try:
            store = self._client.file_search_stores.create(
                config=genai_types.CreateFileSearchStoreConfig(display_name=display_name),
            )
        except _SDK_ERRORS as exc:
            raise TransportError(f"failed to create store: {exc}") from exc
        self._logger.info("store.created", store_id=store.name, display_name=display_name)
        return _to_store(store)

    def list_stores(self) -> list[Store]:
        try:
            return [_to_store(store) for store in self._client.file_search_stores.list()]
        except _SDK_ERRORS as exc:
            raise TransportError(f"failed to list stores: {exc}") from exc

    def list_documents(self, store_id: str) -> list[StoredDocument]:
        try:
            items = list(self._client.file_search_stores.documents.list(parent=store_id))
        except _SDK_ERRORS as exc:
            raise TransportError(f"failed to list documents: {exc}") from exc
        return [_to_document(item, store_id) for item in items]

    def upload(
        self,
        store_id: str,
        data: bytes,
        display_name: str,
        metadata: Mapping[str, str] | None = None,
    ) -> StoredDocument:
        custom_metadata = [
            genai_types.CustomMetadata(key=key, string_value=value)
            for key, value in (metadata or {}).items()
            if value
        ]
        upload_config = genai_types.UploadToFileSearchStoreConfig(
            display_name=display_name,
            mime_type=self._config.mime_type,
            custom_metadata=custom_metadata or None,
        )
        try:
            operation = self._client.file_search_stores.upload_to_file_search_store(
                file_search_store_name=store_id,
                file=io.BytesIO(data),
                config=upload_config,
            )
            if self._config.wait_for_upload:
                operation = self._wait(operation)
        except _SDK_ERRORS as exc:
            raise TransportError(f"failed to upload document: {exc}") from exc

        error = getattr(operation, "error", None)
        if error:
            raise TransportError(f"failed to upload document: {error}")
        document_name = ""
        response = getattr(operation, "response", None)
        if response is not None:
            document_name = getattr(response, "document_name", None) or ""
        return StoredDocument(
            name=document_name,
            display_name=display_name,
            store_id=store_id,
            metadata=dict(metadata or {}),
        )

    def generate_grounded(self, model_id: str, prompt: str, store_ids: Sequence[str]) -> genai_types.GenerateContentResponse:
        tool = genai_types.Tool(
            file_search=genai_types.FileSearch(file_search_store_names=list(store_ids)),
        )
        try:
            return self._client.models.generate_content(
                model=model_id,
                contents=prompt,
                config=genai_types.GenerateContentConfig(tools=[tool]),
            )
        except _SDK_ERRORS as exc:
            raise TransportError(f"failed to generate content: {exc}") from exc

    def _wait(self, operation: Any) -> Any:
        while not operation.done:
            time.sleep(self._config.poll_interval_seconds)
            operation = self._client.operations.get(operation)
        return operation


def _to_store(store: Any) -> Store:
    return Store(
        id=store.name or "",
        display_name=store.display_name or "",
        created_at=getattr(store, "create_time", None),
        updated_at=getattr(store, "update_time", None),
    )


def _to_document(document: Any, store_id: str) -> StoredDocument:
    metadata: dict[str, str] = {}
    for item in getattr(document, "custom_metadata", None) or []:
        if item.key and item.string_value is not None:
            metadata[item.key] = item.string_value
    return StoredDocument(
        name=document.name or "",
        display_name=document.display_name or "",
        store_id=store_id,
        created_at=getattr(document, "create_time", None),
        updated_at=getattr(document, "update_time", None),
        metadata=metadata,
    )

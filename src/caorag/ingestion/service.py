"""Idempotent ingestion of catalog documents into a retrieval store."""

from __future__ import annotations

import time
from typing import Sequence
from urllib.parse import unquote, urlsplit

from caorag.errors import StoreNotFoundError, TransportError
from caorag.metrics.observability import PipelineMetrics, get_logger
from caorag.models import SOURCE_URL_METADATA_KEY, CandidateDocument, IngestionReport, Store
from caorag.sources import DocumentSource
from caorag.stores import StoreGateway, get_store_by_name

_DEGENERATE_NAMES = {"", ".", ".."}


def derive_display_name(source_url: str, position: int) -> str:
    """Return the last path segment of ``source_url``, or ``document_<position>.pdf``.

    ``position`` is the 1-based index of the candidate within its batch, which
    keeps fallback names unique per batch.
    """

    path = urlsplit(source_url).path
    name = unquote(path.rsplit("/", 1)[-1]).strip()
    if name in _DEGENERATE_NAMES:
        return f"document_{position}.pdf"
    return name


def ensure_store(gateway: StoreGateway, display_name: str) -> Store:
    """Look a store up by display name, creating it when missing."""

    logger = get_logger("ingestion")
    try:
        store = get_store_by_name(gateway, display_name)
    except StoreNotFoundError:
        store = gateway.create_store(display_name)
        logger.info("store.create", display_name=display_name, store_id=store.id)
        return store
    logger.info("store.exists", display_name=display_name, store_id=store.id)
    return store


class IngestionPipeline:
    """Uploads only the candidates a store does not already hold."""

    def __init__(self, gateway: StoreGateway, source: DocumentSource) -> None:
        self._gateway = gateway
        self._source = source
        self._logger = get_logger("ingestion")

    def run(self, store_name: str, category: int | None = None) -> IngestionReport:
        """Get-or-create ``store_name``, search the catalog and ingest the results."""

        store = ensure_store(self._gateway, store_name)
        urls = self._source.search(category)
        self._logger.info("ingestion.search", category=category, candidate_count=len(urls))
        return self.ingest(store, [CandidateDocument(source_url=url) for url in urls])

    def ingest(self, store: Store, candidates: Sequence[CandidateDocument]) -> IngestionReport:
        start = time.perf_counter()
        known = self._existing_names(store)
        uploaded = skipped = failed = 0

        for position, candidate in enumerate(candidates, start=1):
            display_name = derive_display_name(candidate.source_url, position)
            if display_name in known:
                self._logger.info("ingestion.skip", display_name=display_name, reason="already uploaded")
                skipped += 1
                continue

            try:
                data = self._source.fetch(candidate.source_url)
            except TransportError as exc:
                self._logger.warning("ingestion.fetch_failed", url=candidate.source_url, detail=str(exc))
                PipelineMetrics.observe_failure("fetch")
                failed += 1
                continue

            try:
                self._gateway.upload(
                    store.id,
                    data,
                    display_name,
                    {SOURCE_URL_METADATA_KEY: candidate.source_url},
                )
            except TransportError as exc:
                self._logger.warning("ingestion.upload_failed", display_name=display_name, detail=str(exc))
                PipelineMetrics.observe_failure("upload")
                failed += 1
                continue

            known.add(display_name)
            uploaded += 1
            self._logger.info("ingestion.upload", display_name=display_name, size_bytes=len(data))

        duration = time.perf_counter() - start
        PipelineMetrics.observe_ingestion(duration, uploaded, skipped)
        self._logger.info(
            "ingestion.complete",
            store_id=store.id,
            uploaded=uploaded,
            skipped=skipped,
            failed=failed,
            duration_seconds=duration,
        )
        return IngestionReport(uploaded=uploaded, skipped=skipped, failed=failed)

    def _existing_names(self, store: Store) -> set[str]:
        # A failed listing degrades to "nothing uploaded yet" rather than aborting.
        try:
            documents = self._gateway.list_documents(store.id)
        except TransportError as exc:
            self._logger.warning("ingestion.list_failed", store_id=store.id, detail=str(exc))
            return set()
        return {document.display_name for document in documents}

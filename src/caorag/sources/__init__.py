"""Document sources feeding the ingestion pipeline."""

from .cao import CaoSearchClient, DocumentSource, SearchConfig, build_search_request

__all__ = ["CaoSearchClient", "DocumentSource", "SearchConfig", "build_search_request"]

"""Document ingestion pipeline."""

from .service import IngestionPipeline, derive_display_name, ensure_store

__all__ = [
    "IngestionPipeline",
    "derive_display_name",
    "ensure_store",
]

"""Observability helpers for caorag."""

from __future__ import annotations

import logging

import structlog
from prometheus_client import Counter, Histogram

_logger_configured = False


def configure_logging(level: int | str = logging.INFO) -> None:
    global _logger_configured  # noqa: PLW0603 - module-level guard
    if _logger_configured:
        return
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format="%(message)s")
    # Keep SDK transport chatter out of the JSON stream.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _logger_configured = True


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = "caorag") -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


class PipelineMetrics:
    """Prometheus metrics for the ingestion and query paths."""

    documents_uploaded = Counter(
        "caorag_documents_uploaded_total",
        "Documents uploaded into a store.",
    )
    documents_skipped = Counter(
        "caorag_documents_skipped_total",
        "Candidate documents skipped because the store already holds them.",
    )
    documents_failed = Counter(
        "caorag_documents_failed_total",
        "Candidate documents that failed to download or upload.",
        ["stage"],
    )
    ingestion_latency = Histogram(
        "caorag_ingestion_duration_seconds",
        "Time spent ingesting one batch of candidates.",
        buckets=(0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0),
    )
    query_latency = Histogram(
        "caorag_query_duration_seconds",
        "Time spent answering a grounded query.",
        buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
    )
    query_failures = Counter(
        "caorag_query_failures_total",
        "Grounded queries that failed downstream.",
    )
    grounding_chunk_count = Histogram(
        "caorag_grounding_chunk_count",
        "Grounding chunks returned per answer.",
        buckets=(0, 1, 2, 3, 5, 8, 13),
    )

    @classmethod
    def observe_ingestion(cls, duration_seconds: float, uploaded: int, skipped: int) -> None:
        cls.ingestion_latency.observe(duration_seconds)
        cls.documents_uploaded.inc(uploaded)
        cls.documents_skipped.inc(skipped)

    @classmethod
    def observe_failure(cls, stage: str) -> None:
        cls.documents_failed.labels(stage=stage).inc()

    @classmethod
    def observe_query(cls, duration_seconds: float, chunk_count: int) -> None:
        cls.query_latency.observe(duration_seconds)
        cls.grounding_chunk_count.observe(chunk_count)


__all__ = [
    "PipelineMetrics",
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "get_logger",
]

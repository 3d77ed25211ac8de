"""Command-line entry points: uploader, querier and HTTP server."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from caorag.config import Settings, get_settings
from caorag.errors import ConfigurationError, NotFoundError, TransportError
from caorag.ingestion import IngestionPipeline
from caorag.metrics.observability import configure_logging
from caorag.models import QueryResult
from caorag.services.query import QueryService
from caorag.sources import CaoSearchClient, SearchConfig
from caorag.stores import GatewayConfig, GeminiFileSearchGateway


def build_gateway(settings: Settings) -> GeminiFileSearchGateway:
    return GeminiFileSearchGateway(
        GatewayConfig(
            api_key=settings.require_api_key(),
            timeout_ms=settings.gemini_timeout_ms,
            wait_for_upload=settings.wait_for_upload,
            poll_interval_seconds=settings.upload_poll_seconds,
        ),
    )


def format_result(result: QueryResult) -> str:
    lines = ["=== Answer ===", result.answer_text]
    if result.sources:
        lines.append("")
        lines.append(f"=== Sources ({len(result.sources)}) ===")
        for index, source in enumerate(result.sources, start=1):
            lines.append(f"{index}. {source.file_name}")
    if result.citations:
        lines.append("")
        lines.append(f"=== Citations ({len(result.citations)}) ===")
        for index, citation in enumerate(result.citations, start=1):
            line = f"{index}. Characters {citation.start_index}-{citation.end_index}"
            if citation.sources:
                line += f" - {citation.sources[0].title}"
            lines.append(line)
    return "\n".join(lines)


def parse_upload_args(argv: Sequence[str], settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download CAO documents and upload new ones to the store.")
    parser.add_argument("--store", default=settings.default_store, help="Display name of the target store")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--jc",
        type=int,
        default=settings.default_joint_committee,
        help="Joint committee number to search for",
    )
    group.add_argument("--all", action="store_true", help="Search every joint committee")
    return parser.parse_args(argv)


def upload_main(argv: Sequence[str] | None = None) -> int:
    settings = get_settings()
    args = parse_upload_args(sys.argv[1:] if argv is None else argv, settings)
    configure_logging(settings.log_level)
    try:
        gateway = build_gateway(settings)
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    source = CaoSearchClient(
        SearchConfig(
            base_url=settings.source_base_url,
            language=settings.source_language,
            timeout=settings.http_timeout_seconds,
        ),
    )
    category = None if args.all else args.jc
    try:
        report = IngestionPipeline(gateway, source).run(args.store, category)
    except TransportError as exc:
        print(f"Upload failed: {exc}", file=sys.stderr)
        return 1
    finally:
        source.close()

    print(
        f"Upload complete: {report.uploaded} new documents uploaded, "
        f"{report.skipped} documents skipped, {report.failed} failed",
    )
    print("Use 'cao-querier \"your question\"' to query the uploaded documents")
    return 0


def parse_query_args(argv: Sequence[str], settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ask a question against the uploaded CAO documents.",
        epilog='Example: cao-querier "Wat is het minimumloon als je 17 jaar bent?"',
    )
    parser.add_argument("question", nargs="+", help="Question to ask; unquoted words are joined")
    parser.add_argument("--store", default=settings.default_store, help="Display name of the store")
    parser.add_argument("--model", default=settings.model, help="Generation model identifier")
    return parser.parse_args(argv)


def query_main(argv: Sequence[str] | None = None) -> int:
    settings = get_settings()
    args = parse_query_args(sys.argv[1:] if argv is None else argv, settings)
    configure_logging(settings.log_level)
    question = " ".join(args.question)
    try:
        service = QueryService(build_gateway(settings), args.model)
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(f"Querying: {question}\n")
    try:
        result = service.query(question, args.store)
    except NotFoundError:
        print(
            f"Store '{args.store}' not found. Please run cao-uploader first to upload documents.",
            file=sys.stderr,
        )
        return 1
    except TransportError as exc:
        print(f"Failed to query: {exc}", file=sys.stderr)
        return 1
    print(format_result(result))
    return 0


def parse_server_args(argv: Sequence[str], settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the CAO query API.")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    return parser.parse_args(argv)


def server_main(argv: Sequence[str] | None = None) -> int:
    import uvicorn

    from caorag.api.app import create_app

    settings = get_settings()
    args = parse_server_args(sys.argv[1:] if argv is None else argv, settings)
    try:
        app = create_app(settings=settings)
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(query_main())

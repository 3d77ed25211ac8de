"""Conversation-aware grounded queries against a single store."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Sequence

from caorag.errors import TransportError
from caorag.metrics.observability import PipelineMetrics, get_logger
from caorag.models import ConversationTurn, QueryResult
from caorag.services.normalizer import normalize_response
from caorag.stores import StoreGateway, get_store_by_name


@dataclass(frozen=True)
class PromptBuilderConfig:
    """Configuration for prompt construction."""

    history_preamble: str = "Previous conversation:\n"
    question_prefix: str = "\nCurrent question: "


class PromptBuilder:
    """Flattens a conversation history and the new question into one prompt."""

    def __init__(self, config: PromptBuilderConfig | None = None) -> None:
        self._config = config or PromptBuilderConfig()

    def build(self, question: str, history: Sequence[ConversationTurn] = ()) -> str:
        if not history:
            return question
        lines = [self._config.history_preamble]
        for turn in history:
            lines.append(f"{turn.role.value}: {turn.content}\n")
        lines.append(self._config.question_prefix)
        lines.append(question)
        return "".join(lines)


class QueryService:
    """Resolves the store, composes the prompt and normalizes the answer."""

    def __init__(
        self,
        gateway: StoreGateway,
        model_id: str,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        self._gateway = gateway
        self._model_id = model_id
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._logger = get_logger("query")

    def query(
        self,
        question: str,
        store_display_name: str,
        history: Sequence[ConversationTurn] = (),
    ) -> QueryResult:
        start = time.perf_counter()
        prompt = self._prompt_builder.build(question, history)
        try:
            store = get_store_by_name(self._gateway, store_display_name)
            raw = self._gateway.generate_grounded(self._model_id, prompt, [store.id])
        except TransportError as exc:
            PipelineMetrics.query_failures.inc()
            self._logger.error("query.failed", store_name=store_display_name, detail=str(exc))
            raise TransportError(f"query against store {store_display_name!r} failed: {exc}") from exc

        result = normalize_response(raw)
        duration = time.perf_counter() - start
        PipelineMetrics.observe_query(duration, len(result.grounding_chunks))
        self._logger.info(
            "query.complete",
            store_id=store.id,
            history_turns=len(history),
            source_count=len(result.sources),
            citation_count=len(result.citations),
            duration_seconds=duration,
        )
        return result

"""Gradio-based chat interface for the CAO query API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Sequence

import gradio as gr
import httpx

from caorag.api.schemas import QueryResponse, SourceDocumentModel

DEFAULT_API_URL = os.getenv("CAORAG_API_URL", "http://localhost:8080")
DEFAULT_STORE = os.getenv("CAORAG_DEFAULT_STORE", "cao-documents")


class APIError(RuntimeError):
    """Raised when communication with the query API fails."""


@dataclass
class CaoQueryClient:
    """HTTPX-based client for the query API."""

    base_url: str = DEFAULT_API_URL
    timeout: float = 120.0
    transport: httpx.BaseTransport | None = None

    def __post_init__(self) -> None:
        self._client = httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    def query(
        self,
        question: str,
        store_name: str,
        history: Sequence[dict[str, str]] = (),
        *,
        api_key: str | None = None,
    ) -> QueryResponse:
        payload: dict[str, Any] = {"query": question, "storeName": store_name}
        if history:
            payload["history"] = list(history)
        headers = {"X-API-Key": api_key} if api_key else None
        try:
            response = self._client.post("/query", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise APIError(f"Query failed: {exc}") from exc
        if response.status_code >= 400:
            raise APIError(_error_message(response))
        return QueryResponse.model_validate(response.json())

    def close(self) -> None:
        self._client.close()


def _error_message(response: httpx.Response) -> str:
    cid = response.headers.get("X-Correlation-ID", "-")
    try:
        detail = response.json().get("error", response.text)
    except ValueError:
        detail = response.text
    return f"{detail} ({response.status_code}) [cid={cid}]"


def to_history(messages: Sequence[Any]) -> list[dict[str, str]]:
    """Convert Gradio chat history (messages or legacy pairs) into API turns."""

    history: list[dict[str, str]] = []
    for message in messages or []:
        if isinstance(message, dict):
            role = message.get("role")
            content = message.get("content")
            if role in ("user", "assistant") and isinstance(content, str):
                history.append({"role": role, "content": content})
        elif isinstance(message, (list, tuple)) and len(message) == 2:
            user, assistant = message
            if isinstance(user, str):
                history.append({"role": "user", "content": user})
            if isinstance(assistant, str):
                history.append({"role": "assistant", "content": assistant})
    return history


def format_sources(sources: Sequence[SourceDocumentModel]) -> str:
    if not sources:
        return ""
    lines = [f"{index}. [{source.file_name}]({source.uri})" for index, source in enumerate(sources, start=1)]
    return "\n\n**Sources**\n" + "\n".join(lines)


def create_query_handler(client: CaoQueryClient):
    def handle_query(message: str, history: list, store_name: str | None = None, api_key: str | None = None) -> str:
        if not message.strip():
            return "⚠️ Enter a question."
        store = (store_name or "").strip() or DEFAULT_STORE
        try:
            response = client.query(message, store, to_history(history), api_key=api_key or None)
        except APIError as exc:
            return f"⚠️ {exc}"
        return response.answer + format_sources(response.sources)

    return handle_query


def build_interface(base_url: str | None = None, client: CaoQueryClient | None = None) -> gr.Blocks:
    api_client = client or CaoQueryClient(base_url=base_url or DEFAULT_API_URL)
    handle_query = create_query_handler(api_client)

    with gr.Blocks(title="CAO Chat") as demo:
        gr.Markdown("## CAO document chat")
        store_box = gr.Textbox(label="Store", value=DEFAULT_STORE)
        api_key_box = gr.Textbox(label="API Key (optional)", type="password")
        gr.ChatInterface(
            fn=handle_query,
            additional_inputs=[store_box, api_key_box],
            chatbot=gr.Chatbot(height=480),
            textbox=gr.Textbox(placeholder="Stel een vraag over de collectieve arbeidsovereenkomsten..."),
        )
        gr.Markdown("Tip: set `CAORAG_API_URL` before launching to point the UI at a remote backend.")

    return demo


def launch(*, base_url: str | None = None, share: bool = False) -> None:
    """Launch the Gradio interface."""

    demo = build_interface(base_url=base_url)
    demo.launch(share=share)


if __name__ == "__main__":
    launch()

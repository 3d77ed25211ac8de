"""Service layer orchestrations for caorag."""

from .normalizer import normalize_response, unique_sources
from .query import PromptBuilder, PromptBuilderConfig, QueryService

__all__ = [
    "normalize_response",
    "unique_sources",
    "PromptBuilder",
    "PromptBuilderConfig",
    "QueryService",
]

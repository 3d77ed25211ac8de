"""Retrieval store gateways."""

from .gateway import GatewayConfig, GeminiFileSearchGateway, StoreGateway, get_store_by_name

__all__ = ["GatewayConfig", "GeminiFileSearchGateway", "StoreGateway", "get_store_by_name"]

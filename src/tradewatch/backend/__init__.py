"""Backend access layer -- read-only HTTP gateway to the trading bot API."""

from tradewatch.backend.gateway import BackendGateway, resolve_base_url

__all__ = ["BackendGateway", "resolve_base_url"]

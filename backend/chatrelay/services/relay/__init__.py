"""Relay client factory."""

from chatrelay.core.config import Settings
from chatrelay.services.relay.base import BaseRelayClient


def get_relay_client(settings: Settings) -> BaseRelayClient:
    """Factory function that returns the relay client for the configured timeout."""
    from chatrelay.services.relay.ollama import OllamaRelayClient
    return OllamaRelayClient(timeout=settings.relay_timeout_seconds)

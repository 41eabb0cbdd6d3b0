"""Exception hierarchy shared across the assistant."""

from __future__ import annotations


class XanaError(Exception):
    """Base class for all assistant errors."""


class InvalidQueryError(XanaError):
    """The inbound query is malformed; no external call was attempted."""


class GenerationError(XanaError):
    """Chat completion for the final answer failed.

    The message is safe to show to clients. Provider detail stays on the
    chained cause and in the server log.
    """


class UnknownProviderError(XanaError):
    """A routing key does not name a configured provider."""

    def __init__(self, key: str, known: list[str]) -> None:
        super().__init__(f"Unknown provider '{key}' (configured: {', '.join(sorted(known))})")
        self.key = key


class ProviderError(XanaError):
    """A provider call failed at transport, status or decoding level."""

    def __init__(self, provider: str, operation: str, message: str) -> None:
        super().__init__(f"[{provider}] {operation} failed: {message}")
        self.provider = provider
        self.operation = operation


class VectorStoreError(XanaError):
    """The vector search collaborator rejected or failed a request."""

"""XANA machine support assistant package."""

from .config import RetrievalConfig, Settings

__all__ = ["RetrievalConfig", "Settings"]

"""Store abstraction for the local order service."""

from .base import OrderStore
from .inmemory import InMemoryOrderStore

__all__ = ["OrderStore", "InMemoryOrderStore"]

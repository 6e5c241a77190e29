"""
Database package: chat store implementations
"""

from .memory_store import InMemoryChatStore
from .postgres_store import PostgresChatStore, PostgresConfig

__all__ = ['InMemoryChatStore', 'PostgresChatStore', 'PostgresConfig']

"""Repositories package — datastore protocol and its implementations."""

from repovec.repositories.base import Storage
from repovec.repositories.memory import MemoryStorage
from repovec.repositories.sql import SqlStorage

__all__ = [
    "MemoryStorage",
    "SqlStorage",
    "Storage",
]

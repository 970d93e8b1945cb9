"""
Adapters Package

Interface the external document system implements, plus an in-memory
reference implementation.
"""

from .base import AdapterError, DocumentAdapter, DocumentId, PageId
from .memory import InMemoryAdapter

__all__ = [
    "AdapterError",
    "DocumentAdapter",
    "DocumentId",
    "PageId",
    "InMemoryAdapter",
]

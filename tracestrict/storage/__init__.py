"""
tracestrict.storage - Trace storage whose reads honor strict trace IDs.

This subpackage contains:
- config: StorageConfig loaded from the environment
- in_memory: InMemoryStorage indexed by low 64-bit trace ID
"""

from tracestrict.storage.config import StorageConfig
from tracestrict.storage.in_memory import InMemoryStorage

__all__ = [
    "StorageConfig",
    "InMemoryStorage",
]

"""Local index (package list + secret) persistence."""

from .base import LocalIndex, LocalIndexProvider
from .factory import create_local_index_provider
from .manager import LocalIndexManager

__all__ = [
    "LocalIndex",
    "LocalIndexProvider",
    "LocalIndexManager",
    "create_local_index_provider",
]

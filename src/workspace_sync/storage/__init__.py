"""Storage backends: database, identity, workspaces, indexing and caching."""

from .database import Database
from .users import IdentityResolver
from .workspaces import WorkspaceStore
from .indexer import ContentIndexer, detect_language
from .cache import LRUCache, WorkspaceCache

__all__ = [
    "Database",
    "IdentityResolver",
    "WorkspaceStore",
    "ContentIndexer",
    "detect_language",
    "LRUCache",
    "WorkspaceCache",
]

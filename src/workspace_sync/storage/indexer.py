"""
Content indexer for saved workspace files.

Records per-file metadata (language, line count, size) that downstream
consumers use to decide what to analyse. Indexing runs after a successful
create or modify and is best-effort: the reconciliation engine logs an
``IndexingError`` and carries on.
"""

from datetime import datetime
from typing import Iterable

import aiosqlite

from ..sync.models import FileMeta
from ..utils.errors import IndexingError
from ..utils.logging import get_logger
from .database import Database

logger = get_logger("workspace-sync.indexer")


LANGUAGE_BY_EXTENSION = {
    "go": "go",
    "py": "python",
    "java": "java",
    "js": "javascript",
    "ts": "typescript",
    "jsx": "jsx",
    "tsx": "tsx",
    "html": "html",
    "css": "css",
    "php": "php",
    "rs": "rust",
    "swift": "swift",
    "kt": "kotlin",
    "c": "c",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
}


def file_extension(path: str) -> str:
    """Text after the last dot of ``path``, without the dot."""
    _, dot, ext = path.rpartition(".")
    return ext if dot else ""


def detect_language(path: str) -> str:
    """Language name for a path, or ``""`` when the extension is unknown."""
    return LANGUAGE_BY_EXTENSION.get(file_extension(path), "")


class ContentIndexer:
    """Writes ``FileMeta`` records into the ``file_index`` table."""

    def __init__(self, db: Database):
        self.db = db

    async def index_files(self, user_id: str, workspace_id: str, files: Iterable[FileMeta]) -> int:
        """
        Index a batch of files, replacing any previous entry per path.

        Returns:
            Number of files indexed

        Raises:
            IndexingError: if any row cannot be written
        """
        count = 0
        now = datetime.utcnow().isoformat()
        for meta in files:
            line_count = meta.content.count("\n") + (1 if meta.content and not meta.content.endswith("\n") else 0)
            try:
                await self.db.execute(
                    "INSERT INTO file_index "
                    "(workspace_id, path, user_id, language, line_count, size, indexed_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT (workspace_id, path) DO UPDATE SET "
                    "language = excluded.language, line_count = excluded.line_count, "
                    "size = excluded.size, indexed_at = excluded.indexed_at",
                    (
                        workspace_id, meta.path, user_id, meta.language,
                        line_count, len(meta.content.encode("utf-8")), now,
                    ),
                )
            except aiosqlite.Error as e:
                raise IndexingError(f"failed to index {meta.path}: {e}", cause=e) from e
            count += 1

        logger.debug("files_indexed", workspace_id=workspace_id, count=count)
        return count


__all__ = ["ContentIndexer", "detect_language", "file_extension", "LANGUAGE_BY_EXTENSION"]

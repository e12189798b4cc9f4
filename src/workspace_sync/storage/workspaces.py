"""
Durable storage for workspaces and their files.

A workspace is identified by ``(user_id, root_path)`` and a file by
``(workspace_id, path)``; the UNIQUE constraints on both tables are what
keep at most one live record per identity when two reconciliations race.
"""

import os
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

import aiosqlite

from ..sync.models import CreateFileRequest, Workspace, WorkspaceFile
from ..utils.errors import DatabaseError, NotFoundError, StoreError, WorkspaceError
from ..utils.logging import get_logger
from .database import Database

logger = get_logger("workspace-sync.workspaces")

_FILE_COLUMNS = (
    "id, user_id, workspace_id, path, content, content_hash, size, created_at, updated_at"
)


def _now() -> str:
    return datetime.utcnow().isoformat()


def _workspace_from_row(row: aiosqlite.Row) -> Workspace:
    return Workspace(
        id=row["id"],
        user_id=row["user_id"],
        root_path=row["root_path"],
        name=row["name"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _file_from_row(row: aiosqlite.Row) -> WorkspaceFile:
    return WorkspaceFile(
        id=row["id"],
        user_id=row["user_id"],
        workspace_id=row["workspace_id"],
        path=row["path"],
        content=row["content"],
        content_hash=row["content_hash"],
        size=row["size"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class WorkspaceStore:
    """SQLite-backed workspace and file store."""

    def __init__(self, db: Database):
        self.db = db

    async def ensure_workspace(self, user_id: str, root_path: str, name: str = "") -> Workspace:
        """
        Return the workspace for ``(user_id, root_path)``, creating it if needed.

        Args:
            user_id: Owning user
            root_path: Workspace root reported by the client
            name: Display name (defaults to the root's last path component)

        Raises:
            WorkspaceError: if ``root_path`` is empty or the store fails
        """
        if not root_path:
            raise WorkspaceError("no workspace path provided")

        name = name or os.path.basename(root_path.rstrip("/\\")) or root_path
        now = _now()
        try:
            await self.db.execute(
                "INSERT INTO workspaces (id, user_id, root_path, name, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?) ON CONFLICT (user_id, root_path) DO NOTHING",
                (str(uuid.uuid4()), user_id, root_path, name, now, now),
            )
            row = await self.db.fetchone(
                "SELECT * FROM workspaces WHERE user_id = ? AND root_path = ?",
                (user_id, root_path),
            )
        except aiosqlite.Error as e:
            raise WorkspaceError(str(e), cause=e) from e

        if row is None:
            raise WorkspaceError(f"workspace {root_path!r} vanished after insert")
        return _workspace_from_row(row)

    async def get_workspace(self, user_id: str, root_path: str) -> Workspace:
        """Look up an existing workspace without creating it."""
        try:
            row = await self.db.fetchone(
                "SELECT * FROM workspaces WHERE user_id = ? AND root_path = ?",
                (user_id, root_path),
            )
        except aiosqlite.Error as e:
            raise DatabaseError(str(e), cause=e) from e

        if row is None:
            raise NotFoundError(f"workspace not found: {root_path}")
        return _workspace_from_row(row)

    async def get_file_by_path(self, user_id: str, workspace_id: str, path: str) -> WorkspaceFile:
        """
        Look up a file by its workspace-relative path.

        Raises:
            NotFoundError: if no record exists for the path
            DatabaseError: on any other failure
        """
        try:
            row = await self.db.fetchone(
                f"SELECT {_FILE_COLUMNS} FROM workspace_files "
                "WHERE user_id = ? AND workspace_id = ? AND path = ?",
                (user_id, workspace_id, path),
            )
        except aiosqlite.Error as e:
            raise DatabaseError(str(e), cause=e) from e

        if row is None:
            raise NotFoundError(f"file not found: {path}")
        return _file_from_row(row)

    async def create_file(self, req: CreateFileRequest) -> WorkspaceFile:
        """
        Create a file record.

        Raises:
            StoreError: if a record already exists for the path
            DatabaseError: on any other failure
        """
        now = datetime.utcnow()
        record = WorkspaceFile(
            id=str(uuid.uuid4()),
            user_id=req.user_id,
            workspace_id=req.workspace_id,
            path=req.path,
            content=req.content,
            content_hash=req.content_hash,
            size=len(req.content.encode("utf-8")),
            created_at=now,
            updated_at=now,
        )
        try:
            await self.db.execute(
                f"INSERT INTO workspace_files ({_FILE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id, record.user_id, record.workspace_id, record.path,
                    record.content, record.content_hash, record.size,
                    now.isoformat(), now.isoformat(),
                ),
            )
        except aiosqlite.IntegrityError as e:
            raise StoreError(f"file already exists: {req.path}", cause=e) from e
        except aiosqlite.Error as e:
            raise DatabaseError(str(e), cause=e) from e

        logger.debug("file_created", file_id=record.id, path=record.path)
        return record

    async def update_file(
        self,
        file_id: str,
        content: Optional[str] = None,
        content_hash: Optional[str] = None,
    ) -> WorkspaceFile:
        """
        Update content and/or hash of a file; ``None`` leaves a column as is.

        Raises:
            NotFoundError: if the file no longer exists
            DatabaseError: on any other failure
        """
        assignments = ["updated_at = ?"]
        params: list = [_now()]
        if content is not None:
            assignments += ["content = ?", "size = ?"]
            params += [content, len(content.encode("utf-8"))]
        if content_hash is not None:
            assignments.append("content_hash = ?")
            params.append(content_hash)
        params.append(file_id)

        try:
            cursor = await self.db.execute(
                f"UPDATE workspace_files SET {', '.join(assignments)} WHERE id = ?",
                tuple(params),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"file not found: {file_id}")
            row = await self.db.fetchone(
                f"SELECT {_FILE_COLUMNS} FROM workspace_files WHERE id = ?",
                (file_id,),
            )
        except aiosqlite.Error as e:
            raise DatabaseError(str(e), cause=e) from e

        if row is None:
            raise NotFoundError(f"file not found: {file_id}")
        return _file_from_row(row)

    async def delete_file(self, file_id: str) -> None:
        """
        Delete a file record and its index entry.

        Raises:
            NotFoundError: if the file does not exist
            DatabaseError: on any other failure
        """
        try:
            row = await self.db.fetchone(
                "SELECT workspace_id, path FROM workspace_files WHERE id = ?",
                (file_id,),
            )
            if row is None:
                raise NotFoundError(f"file not found: {file_id}")
            await self.db.execute("DELETE FROM workspace_files WHERE id = ?", (file_id,))
            await self.db.execute(
                "DELETE FROM file_index WHERE workspace_id = ? AND path = ?",
                (row["workspace_id"], row["path"]),
            )
        except aiosqlite.Error as e:
            raise DatabaseError(str(e), cause=e) from e

        logger.debug("file_deleted", file_id=file_id)

    async def get_workspace_stats(self, user_id: str, root_path: str) -> Dict[str, Any]:
        """
        Summarize a workspace: file count, total size, indexed files and
        per-language counts.

        Raises:
            NotFoundError: if the workspace does not exist
        """
        workspace = await self.get_workspace(user_id, root_path)

        try:
            totals = await self.db.fetchone(
                "SELECT COUNT(*) AS file_count, COALESCE(SUM(size), 0) AS total_bytes "
                "FROM workspace_files WHERE workspace_id = ?",
                (workspace.id,),
            )
            languages = await self.db.fetchall(
                "SELECT language, COUNT(*) AS files FROM file_index "
                "WHERE workspace_id = ? GROUP BY language ORDER BY language",
                (workspace.id,),
            )
        except aiosqlite.Error as e:
            raise DatabaseError(str(e), cause=e) from e

        return {
            "workspaceId": workspace.id,
            "workspacePath": workspace.root_path,
            "fileCount": totals["file_count"],
            "totalBytes": totals["total_bytes"],
            "indexedFiles": sum(row["files"] for row in languages),
            "languages": {(row["language"] or "unknown"): row["files"] for row in languages},
        }

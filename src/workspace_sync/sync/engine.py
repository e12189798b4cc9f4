"""
Reconciliation engine.

Applies one ChangeNotification to the workspace store:

    resolve user -> ensure workspace -> create / update / skip / delete

The engine holds no state of its own. Every failure along the way is
translated into an ``error`` outcome carrying a human-readable message, so
``reconcile`` returns exactly one ReconciliationOutcome per notification and
never raises for domain errors.
"""

from typing import Optional

from ..storage.indexer import ContentIndexer, detect_language
from ..storage.users import IdentityResolver
from ..storage.workspaces import WorkspaceStore
from ..utils.errors import NotFoundError, SyncError, WorkspaceError
from ..utils.logging import get_logger
from .models import (
    ChangeNotification,
    CreateFileRequest,
    EventKind,
    FileMeta,
    ReconciliationOutcome,
    Workspace,
)

logger = get_logger("workspace-sync.engine")

MSG_CREATED = "File created successfully"
MSG_UP_TO_DATE = "File is already up-to-date"
MSG_UPDATED = "File updated successfully"
MSG_DELETED = "File deleted successfully"


class ReconciliationEngine:
    """Orchestrates the identity resolver, workspace store and indexer."""

    def __init__(
        self,
        identity: IdentityResolver,
        store: WorkspaceStore,
        indexer: Optional[ContentIndexer] = None,
        workspaces=None,
    ):
        """
        Args:
            identity: Resolves the acting user from the API key
            store: File store used for lookups and mutations
            indexer: Best-effort content indexer (None disables indexing)
            workspaces: Anything with ``ensure_workspace``; defaults to
                ``store``, normally a ``WorkspaceCache`` in front of it
        """
        self.identity = identity
        self.store = store
        self.indexer = indexer
        self.workspaces = workspaces if workspaces is not None else store

    async def reconcile(self, notification: ChangeNotification) -> ReconciliationOutcome:
        """Reconcile one notification and return its outcome."""
        log = logger.bind(
            correlation_id=notification.id,
            file=notification.file_path,
            event_kind=notification.event_kind,
        )

        try:
            user = await self.identity.resolve_by_credential(notification.credential)
        except SyncError as e:
            log.error("identity_resolution_failed", error=str(e))
            return ReconciliationOutcome.failure(notification, f"Invalid API key: {e}")

        try:
            workspace = await self._ensure_workspace(user.id, notification.workspace_root)
        except SyncError as e:
            log.error("ensure_workspace_failed", user_id=user.id, error=str(e))
            return ReconciliationOutcome.failure(notification, f"Failed to ensure workspace: {e}")

        log = log.bind(user_id=user.id, workspace_id=workspace.id)

        kind = EventKind.parse(notification.event_kind)
        if kind in (EventKind.INITIAL_SCAN, EventKind.ADDED):
            outcome = await self._create_or_update(notification, user.id, workspace, log)
        elif kind is EventKind.MODIFIED:
            outcome = await self._modify(notification, user.id, workspace, log)
        elif kind is EventKind.DELETED:
            outcome = await self._delete(notification, user.id, workspace, log)
        else:
            log.warning("unknown_event_type")
            outcome = ReconciliationOutcome.failure(
                notification, f"Unknown event type: {notification.event_kind}"
            )

        return outcome

    async def _ensure_workspace(self, user_id: str, root_path: str) -> Workspace:
        if not root_path:
            raise WorkspaceError("no workspace path provided")
        return await self.workspaces.ensure_workspace(user_id, root_path, "")

    async def _create_or_update(self, n: ChangeNotification, user_id: str, workspace: Workspace, log):
        try:
            existing = await self.store.get_file_by_path(user_id, workspace.id, n.file_path)
        except NotFoundError:
            existing = None
        except SyncError as e:
            log.error("existing_file_check_failed", error=str(e))
            return ReconciliationOutcome.failure(n, f"Error checking for existing file: {e}")

        if existing is None:
            try:
                await self.store.create_file(CreateFileRequest(
                    user_id=user_id,
                    workspace_id=workspace.id,
                    path=n.file_path,
                    content=n.content,
                    content_hash=n.content_hash,
                ))
            except SyncError as e:
                log.error("file_create_failed", error=str(e))
                return ReconciliationOutcome.failure(n, f"Failed to create file: {e}")

            await self._index(n, user_id, workspace, log)
            log.debug("file_created")
            return ReconciliationOutcome.success(n, MSG_CREATED)

        if existing.content_hash == n.content_hash:
            log.debug("file_unchanged")
            return ReconciliationOutcome.success(n, MSG_UP_TO_DATE)

        try:
            await self.store.update_file(existing.id, content=n.content, content_hash=n.content_hash)
        except SyncError as e:
            log.error("existing_file_update_failed", error=str(e))
            return ReconciliationOutcome.failure(n, f"Failed to update existing file: {e}")

        log.debug("file_updated", previous_hash=existing.content_hash)
        return ReconciliationOutcome.success(n, MSG_UPDATED)

    async def _modify(self, n: ChangeNotification, user_id: str, workspace: Workspace, log):
        # modified never falls back to create
        try:
            existing = await self.store.get_file_by_path(user_id, workspace.id, n.file_path)
        except SyncError as e:
            log.error("file_lookup_for_update_failed", error=str(e))
            return ReconciliationOutcome.failure(n, f"Failed to find file for update: {e}")

        try:
            await self.store.update_file(existing.id, content=n.content, content_hash=n.content_hash)
        except SyncError as e:
            log.error("file_update_failed", error=str(e))
            return ReconciliationOutcome.failure(n, f"Failed to update file: {e}")

        await self._index(n, user_id, workspace, log)
        log.debug("file_updated")
        return ReconciliationOutcome.success(n, MSG_UPDATED)

    async def _delete(self, n: ChangeNotification, user_id: str, workspace: Workspace, log):
        try:
            existing = await self.store.get_file_by_path(user_id, workspace.id, n.file_path)
        except SyncError as e:
            log.error("file_lookup_for_delete_failed", error=str(e))
            return ReconciliationOutcome.failure(n, f"Failed to find file for deletion: {e}")

        try:
            await self.store.delete_file(existing.id)
        except SyncError as e:
            log.error("file_delete_failed", error=str(e))
            return ReconciliationOutcome.failure(n, f"Failed to delete file: {e}")

        log.debug("file_deleted")
        return ReconciliationOutcome.success(n, MSG_DELETED)

    async def _index(self, n: ChangeNotification, user_id: str, workspace: Workspace, log) -> None:
        """Submit the saved file to the indexer; failures are only logged."""
        if self.indexer is None:
            return

        meta = FileMeta(path=n.file_path, language=detect_language(n.file_path), content=n.content)
        try:
            await self.indexer.index_files(user_id, workspace.id, [meta])
        except Exception as e:
            log.warning("indexing_failed", error=str(e), error_type=type(e).__name__)

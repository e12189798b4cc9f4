"""Answers ``workspace:stats`` queries."""

from typing import Any, Dict

from ..storage.users import IdentityResolver
from ..storage.workspaces import WorkspaceStore
from ..utils.errors import AuthenticationError, NotFoundError, SyncError
from ..utils.logging import get_logger
from .decoder import decode_payload
from .models import classify_payload

logger = get_logger("workspace-sync.stats")


async def workspace_stats(
    identity: IdentityResolver,
    store: WorkspaceStore,
    sid: str,
    *args: Any,
) -> Dict[str, Any]:
    """Summarize the workspace named by ``{apiKey, workspacePath}``.

    Accepts the same payload shapes as ``file:update``. Never raises; errors
    come back as ``{"status": "error", "message": ...}``.
    """
    if not args:
        return {"status": "error", "message": "No data provided"}

    payload = classify_payload(args[0])
    if payload is None:
        return {"status": "error", "message": "Invalid data format"}

    try:
        query = decode_payload(payload)
        if not query.workspace_root:
            return {"status": "error", "message": "no workspace path provided"}
        user = await identity.resolve_by_credential(query.credential)
        stats = await store.get_workspace_stats(user.id, query.workspace_root)
    except AuthenticationError as e:
        return {"status": "error", "message": f"Invalid API key: {e}"}
    except NotFoundError as e:
        return {"status": "error", "message": str(e)}
    except SyncError as e:
        logger.error("workspace_stats_failed", sid=sid, error=str(e))
        return {"status": "error", "message": str(e)}

    logger.debug("workspace_stats_sent", sid=sid, workspace_id=stats["workspaceId"])
    return {"status": "ok", **stats}

"""Socket.IO event routing for sync clients."""

from typing import Any, Dict, Optional

from ..storage.users import IdentityResolver
from ..storage.workspaces import WorkspaceStore
from ..sync.decoder import INVALID_DATA_FORMAT, decode_payload
from ..sync.liveness import build_heartbeat_ack, build_pong
from ..sync.models import classify_payload
from ..sync.pool import ReconciliationPool
from ..sync.stats import workspace_stats
from ..utils.errors import PayloadError
from ..utils.logging import get_logger
from .acks import AcknowledgementEmitter, error_ack, received_ack
from .session import SessionRegistry

logger = get_logger("workspace-sync.router")

SERVER_STATUS_EVENT = "server:status"
PONG_EVENT = "test:pong"

EVENTS = (
    "connect",
    "disconnect",
    "file:update",
    "test:ping",
    "heartbeat",
    "workspace:stats",
)


class EventRouter:
    """Subscribes connections to the sync channels and dispatches events.

    Handlers follow python-socketio conventions: the first argument is the
    socket id, the remaining positional arguments are the event payload, and
    a returned value is sent back to the client as the event's ack.
    """

    def __init__(
        self,
        sessions: SessionRegistry,
        pool: ReconciliationPool,
        emitter: AcknowledgementEmitter,
        identity: IdentityResolver,
        store: WorkspaceStore,
    ):
        self.sessions = sessions
        self.pool = pool
        self.emitter = emitter
        self.identity = identity
        self.store = store

    def register(self, sio) -> None:
        """Attach every handler to a ``socketio.AsyncServer``."""
        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        sio.on("file:update", self.on_file_update)
        sio.on("test:ping", self.on_ping)
        sio.on("heartbeat", self.on_heartbeat)
        sio.on("workspace:stats", self.on_workspace_stats)

    async def on_connect(self, sid: str, environ: Optional[dict] = None, auth: Any = None) -> None:
        self.sessions.open(sid)
        logger.info("client_connected", sid=sid, clients=self.sessions.count())
        self.emitter.send(sid, SERVER_STATUS_EVENT, {
            "status": "ready",
            "message": "Server is ready to receive updates",
        })

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        # in-flight reconciliations keep running; their results are dropped
        await self.sessions.close(sid)
        logger.info(
            "client_disconnected",
            sid=sid,
            reason=str(reason) if reason is not None else "unknown",
            clients=self.sessions.count(),
        )

    async def on_file_update(self, sid: str, *args: Any) -> Dict[str, Any]:
        """Decode a change notification, ack it and hand it off."""
        logger.debug("file_update_received", sid=sid, data_count=len(args))

        if not args:
            return error_ack("No data provided")

        payload = classify_payload(args[0])
        if payload is None:
            logger.error("invalid_payload_shape", sid=sid, data_type=type(args[0]).__name__)
            return error_ack(INVALID_DATA_FORMAT)

        try:
            notification = decode_payload(payload)
        except PayloadError as e:
            return error_ack(e.message)

        if not self.pool.accepting:
            return error_ack("Server is shutting down")

        logger.debug(
            "processing_file_update",
            sid=sid,
            correlation_id=notification.id,
            event_kind=notification.event_kind,
            file=notification.file_path,
        )
        self.pool.submit(sid, notification)
        return received_ack(notification)

    async def on_ping(self, sid: str, *args: Any) -> None:
        if not args:
            return
        pong = build_pong(sid, args[0])
        if pong is not None:
            self.emitter.send(sid, PONG_EVENT, pong)

    async def on_heartbeat(self, sid: str, *args: Any) -> Dict[str, Any]:
        return build_heartbeat_ack(sid, *args)

    async def on_workspace_stats(self, sid: str, *args: Any) -> Dict[str, Any]:
        logger.debug("workspace_stats_requested", sid=sid)
        return await workspace_stats(self.identity, self.store, sid, *args)

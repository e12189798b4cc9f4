"""
Socket.IO server for workspace file synchronization.

``SyncServer`` assembles the stack: the aiosqlite database, the identity
resolver, workspace store, cache and indexer, the reconciliation engine and
pool, and the event router, and serves them through a
``socketio.AsyncServer`` mounted on an aiohttp application.
"""

import asyncio
import signal
from typing import Any, Dict, Optional

import socketio
from aiohttp import web

from .storage.cache import WorkspaceCache
from .storage.database import Database
from .storage.indexer import ContentIndexer
from .storage.users import IdentityResolver
from .storage.workspaces import WorkspaceStore
from .sync.engine import ReconciliationEngine
from .sync.pool import ReconciliationPool
from .utils.config import SyncConfig
from .utils.logging import get_logger
from .websocket.acks import AcknowledgementEmitter
from .websocket.router import SERVER_STATUS_EVENT, EventRouter
from .websocket.session import SessionRegistry

logger = get_logger("workspace-sync.server")


class SyncServer:
    """Workspace sync server."""

    def __init__(self, config: SyncConfig, db: Optional[Database] = None):
        """
        Args:
            config: Server configuration
            db: Database to use instead of the one named in ``config``
        """
        self.config = config

        self.sio = socketio.AsyncServer(
            async_mode='aiohttp',
            cors_allowed_origins=config.server.cors_allowed_origins,
            ping_interval=config.server.ping_interval,
            ping_timeout=config.server.ping_timeout,
            max_http_buffer_size=config.server.max_http_buffer_size,
            logger=False,
            engineio_logger=False,
        )
        self.app = web.Application()
        self.sio.attach(self.app)
        self.app.router.add_get("/health", self._health)

        self.db = db or Database(
            config.database.path,
            journal_mode=config.database.journal_mode,
            synchronous=config.database.synchronous,
        )
        self.identity = IdentityResolver(self.db)
        self.store = WorkspaceStore(self.db)
        self.workspace_cache = WorkspaceCache(
            self.store,
            max_size=config.sync.workspace_cache_size,
            ttl_seconds=config.sync.workspace_cache_ttl,
        )
        self.indexer = ContentIndexer(self.db) if config.sync.enable_indexing else None

        self.engine = ReconciliationEngine(
            self.identity,
            self.store,
            indexer=self.indexer,
            workspaces=self.workspace_cache,
        )
        self.sessions = SessionRegistry(self.sio)
        self.emitter = AcknowledgementEmitter(self.sessions)
        self.pool = ReconciliationPool(
            self.engine,
            self.emitter.send_final,
            max_concurrency=config.sync.max_concurrent_reconciliations,
        )
        self.router = EventRouter(self.sessions, self.pool, self.emitter, self.identity, self.store)
        self.router.register(self.sio)

        self._runner: Optional[web.AppRunner] = None
        self._stop_event: Optional[asyncio.Event] = None

    async def start(self) -> None:
        """Initialize the database and start listening."""
        await self.db.initialize()

        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.server.host, self.config.server.port)
        await site.start()
        logger.info(
            "server_started",
            host=self.config.server.host,
            port=self.config.server.port,
            max_concurrency=self.pool.max_concurrency,
        )

    async def stop(self) -> None:
        """Stop accepting work, drain reconciliations and release resources."""
        logger.info("server_stopping", clients=self.connected_clients(), in_flight=self.pool.in_flight)
        self.broadcast_server_status("shutting_down", "Server is shutting down")

        drained = await self.pool.drain(timeout=self.config.sync.shutdown_timeout)
        await self.sessions.close_all()

        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        await self.db.close()
        logger.info("server_stopped", drained=drained)

    async def run_forever(self) -> None:
        """Serve until SIGINT or SIGTERM."""
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._stop_event.set)
            except NotImplementedError:
                # Windows event loops have no signal handler support
                pass

        await self.start()
        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    def broadcast_server_status(self, status: str, message: str) -> int:
        """Send ``server:status`` to every connected client."""
        reached = self.sessions.broadcast(SERVER_STATUS_EVENT, {"status": status, "message": message})
        logger.debug("server_status_broadcast", status=status, message=message, clients=reached)
        return reached

    def connected_clients(self) -> int:
        """Number of currently connected clients."""
        return self.sessions.count()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "connected_clients": self.connected_clients(),
            "reconciliation": self.pool.stats(),
            "workspace_cache": self.workspace_cache.stats(),
            "clients": [session.info() for session in self.sessions],
        }

    async def _health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", **self.get_stats()})

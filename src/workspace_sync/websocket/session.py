"""
Per-connection state.

Each connection owns a single-consumer outbound queue drained by one writer
task. Everything the server pushes to a client (status, pong, final results)
goes through ``ConnectionSession.send``, so emissions on one connection are
strictly ordered and never interleave.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from ..utils.logging import get_logger

logger = get_logger("workspace-sync.session")

_CLOSE = object()


class Gateway(Protocol):
    """The subset of ``socketio.AsyncServer`` used to reach clients."""

    async def emit(self, event: str, data: Any = None, to: Optional[str] = None, **kwargs) -> None:
        ...


class ConnectionSession:
    """Outbound channel for a single connection."""

    def __init__(self, sid: str, gateway: Gateway):
        self.sid = sid
        self.gateway = gateway
        self.connected_at = datetime.utcnow()
        self.sent = 0
        self.dropped = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the writer task."""
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain(), name=f"writer:{self.sid}")

    def send(self, event: str, data: Any) -> bool:
        """
        Queue a message for this connection.

        Returns:
            False if the connection is closed and the message was dropped
        """
        if self._closed:
            self.dropped += 1
            logger.warning("message_undeliverable", sid=self.sid, event_name=event)
            return False

        self._queue.put_nowait((event, data))
        return True

    async def flush(self) -> None:
        """Wait until every queued message has been written."""
        await self._queue.join()

    async def close(self) -> None:
        """Stop accepting messages, write what is queued, stop the writer."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)
        if self._writer is not None:
            await self._writer

    async def _drain(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _CLOSE:
                    return
                event, data = item
                try:
                    await self.gateway.emit(event, data, to=self.sid)
                    self.sent += 1
                except Exception as e:
                    logger.error("emit_failed", sid=self.sid, event_name=event, error=str(e))
            finally:
                self._queue.task_done()

    def info(self) -> Dict[str, Any]:
        return {
            "sid": self.sid,
            "connected_at": self.connected_at.isoformat(),
            "sent": self.sent,
            "dropped": self.dropped,
            "queued": self._queue.qsize(),
        }


class SessionRegistry:
    """Open connection sessions keyed by socket id."""

    def __init__(self, gateway: Gateway):
        self.gateway = gateway
        self._sessions: Dict[str, ConnectionSession] = {}

    def open(self, sid: str) -> ConnectionSession:
        session = ConnectionSession(sid, self.gateway)
        session.start()
        self._sessions[sid] = session
        return session

    def get(self, sid: str) -> Optional[ConnectionSession]:
        return self._sessions.get(sid)

    async def close(self, sid: str) -> None:
        session = self._sessions.pop(sid, None)
        if session is not None:
            await session.close()

    async def close_all(self) -> None:
        for sid in list(self._sessions):
            await self.close(sid)

    def broadcast(self, event: str, data: Any) -> int:
        """Queue ``event`` on every open session; returns the number reached."""
        return sum(1 for session in list(self._sessions.values()) if session.send(event, data))

    def count(self) -> int:
        return len(self._sessions)

    def __iter__(self):
        return iter(list(self._sessions.values()))

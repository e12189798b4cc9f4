"""
Tests for per-connection outbound sessions.
"""

import asyncio

import pytest

from workspace_sync.websocket.acks import FINAL_RESULT_EVENT, AcknowledgementEmitter
from workspace_sync.websocket.session import ConnectionSession, SessionRegistry
from workspace_sync.sync.models import ReconciliationOutcome, OutcomeStatus


class SlowGateway:
    """Gateway whose emit yields to the loop a varying number of times."""

    def __init__(self):
        self.emitted = []
        self.in_emit = 0
        self.max_in_emit = 0

    async def emit(self, event, data=None, to=None, **kwargs):
        self.in_emit += 1
        self.max_in_emit = max(self.max_in_emit, self.in_emit)
        for _ in range(data.get("delay", 0) if isinstance(data, dict) else 0):
            await asyncio.sleep(0)
        self.emitted.append((event, data, to))
        self.in_emit -= 1


class FailingGateway:
    def __init__(self):
        self.calls = 0

    async def emit(self, event, data=None, to=None, **kwargs):
        self.calls += 1
        raise ConnectionError("transport closed")


class TestConnectionSession:
    """Test the single-writer outbound queue."""

    @pytest.mark.asyncio
    async def test_messages_are_written_in_order(self):
        gateway = SlowGateway()
        session = ConnectionSession("sid-a", gateway)
        session.start()

        for i, delay in enumerate([5, 0, 3, 1]):
            assert session.send("evt", {"seq": i, "delay": delay})
        await session.flush()

        assert [data["seq"] for _, data, _ in gateway.emitted] == [0, 1, 2, 3]
        assert gateway.max_in_emit == 1
        assert all(to == "sid-a" for _, _, to in gateway.emitted)
        await session.close()

    @pytest.mark.asyncio
    async def test_concurrent_senders_never_interleave(self):
        gateway = SlowGateway()
        session = ConnectionSession("sid-a", gateway)
        session.start()

        async def producer(n):
            await asyncio.sleep(0)
            session.send("evt", {"seq": n, "delay": 2})

        await asyncio.gather(*(producer(n) for n in range(10)))
        await session.flush()

        assert len(gateway.emitted) == 10
        assert gateway.max_in_emit == 1
        await session.close()

    @pytest.mark.asyncio
    async def test_close_writes_queued_messages(self):
        gateway = SlowGateway()
        session = ConnectionSession("sid-a", gateway)
        session.start()

        session.send("evt", {"seq": 1})
        session.send("evt", {"seq": 2})
        await session.close()

        assert len(gateway.emitted) == 2
        assert session.sent == 2

    @pytest.mark.asyncio
    async def test_send_after_close_is_dropped(self):
        gateway = SlowGateway()
        session = ConnectionSession("sid-a", gateway)
        session.start()
        await session.close()

        assert session.send("evt", {"seq": 1}) is False
        assert session.dropped == 1
        assert session.closed
        assert gateway.emitted == []

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        session = ConnectionSession("sid-a", SlowGateway())
        session.start()

        await session.close()
        await session.close()

    @pytest.mark.asyncio
    async def test_emit_failure_does_not_stop_writer(self):
        gateway = FailingGateway()
        session = ConnectionSession("sid-a", gateway)
        session.start()

        session.send("evt", {"seq": 1})
        session.send("evt", {"seq": 2})
        await session.flush()

        assert gateway.calls == 2
        assert session.sent == 0
        await session.close()

    @pytest.mark.asyncio
    async def test_info(self):
        session = ConnectionSession("sid-a", SlowGateway())
        info = session.info()

        assert info["sid"] == "sid-a"
        assert info["queued"] == 0
        assert info["dropped"] == 0


class TestSessionRegistry:
    """Test session bookkeeping and broadcast."""

    @pytest.mark.asyncio
    async def test_open_get_close(self, gateway):
        registry = SessionRegistry(gateway)

        session = registry.open("sid-a")
        assert registry.get("sid-a") is session
        assert registry.count() == 1

        await registry.close("sid-a")
        assert registry.get("sid-a") is None
        assert session.closed

    @pytest.mark.asyncio
    async def test_broadcast_reaches_every_session(self, gateway):
        registry = SessionRegistry(gateway)
        registry.open("sid-a")
        registry.open("sid-b")

        reached = registry.broadcast("server:status", {"status": "ready"})
        for session in registry:
            await session.flush()

        assert reached == 2
        assert gateway.emitted_to("sid-a", "server:status") == [{"status": "ready"}]
        assert gateway.emitted_to("sid-b", "server:status") == [{"status": "ready"}]
        await registry.close_all()
        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_broadcast_with_no_clients(self, gateway):
        assert SessionRegistry(gateway).broadcast("server:status", {}) == 0


class TestAcknowledgementEmitter:
    """Test final-result routing."""

    @pytest.mark.asyncio
    async def test_send_final(self, gateway):
        registry = SessionRegistry(gateway)
        registry.open("sid-a")
        emitter = AcknowledgementEmitter(registry)
        outcome = ReconciliationOutcome(OutcomeStatus.SUCCESS, "File deleted successfully", "a.go", "c-1")

        assert await emitter.send_final("sid-a", outcome) is True
        await registry.get("sid-a").flush()

        assert gateway.emitted_to("sid-a", FINAL_RESULT_EVENT) == [{
            "id": "c-1",
            "status": "success",
            "message": "File deleted successfully",
            "file": "a.go",
        }]
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_unknown_connection(self, gateway):
        emitter = AcknowledgementEmitter(SessionRegistry(gateway))
        outcome = ReconciliationOutcome(OutcomeStatus.ERROR, "boom", "a.go", "c-1")

        assert await emitter.send_final("gone", outcome) is False
        assert gateway.emitted == []

"""
Concurrent reconciliation.

Each notification is reconciled on its own asyncio task so a slow store
never holds up the connection that submitted it. A semaphore bounds how many
reconciliations touch the store at once. Tasks are not tied to the
connection: a client that disconnects mid-flight does not cancel them, its
final result is simply dropped by the emitter.
"""

import asyncio
from typing import Awaitable, Callable, Set

from ..utils.logging import get_logger
from .engine import ReconciliationEngine
from .models import ChangeNotification, ReconciliationOutcome

logger = get_logger("workspace-sync.pool")

Deliver = Callable[[str, ReconciliationOutcome], Awaitable[object]]


class ReconciliationPool:
    """Spawns and tracks reconciliation tasks."""

    def __init__(self, engine: ReconciliationEngine, deliver: Deliver, max_concurrency: int = 32):
        """
        Args:
            engine: Engine that reconciles each notification
            deliver: Coroutine called with ``(sid, outcome)`` when a task ends
            max_concurrency: Upper bound on simultaneous reconciliations
        """
        self.engine = engine
        self.deliver = deliver
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: Set[asyncio.Task] = set()
        self._accepting = True
        self.completed = 0
        self.failed = 0

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def accepting(self) -> bool:
        return self._accepting

    def submit(self, sid: str, notification: ChangeNotification) -> asyncio.Task:
        """Start reconciling ``notification`` for connection ``sid``.

        Returns immediately; the outcome is handed to ``deliver`` later.
        """
        if not self._accepting:
            raise RuntimeError("reconciliation pool is shut down")

        task = asyncio.create_task(
            self._run(sid, notification),
            name=f"reconcile:{sid}:{notification.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, sid: str, notification: ChangeNotification) -> ReconciliationOutcome:
        async with self._semaphore:
            try:
                outcome = await self.engine.reconcile(notification)
            except Exception as e:
                logger.error(
                    "reconciliation_crashed",
                    sid=sid,
                    correlation_id=notification.id,
                    error=str(e),
                    exc_info=True,
                )
                outcome = ReconciliationOutcome.failure(notification, f"Internal error: {e}")

        if outcome.ok:
            self.completed += 1
        else:
            self.failed += 1

        try:
            await self.deliver(sid, outcome)
        except Exception as e:
            logger.error(
                "final_result_delivery_failed",
                sid=sid,
                correlation_id=notification.id,
                error=str(e),
            )
        return outcome

    async def drain(self, timeout: float = 30.0) -> bool:
        """
        Stop accepting work and wait for in-flight reconciliations.

        Tasks still running after ``timeout`` are cancelled.

        Returns:
            True if every task finished on its own
        """
        self._accepting = False
        if not self._tasks:
            return True

        pending = set(self._tasks)
        logger.info("draining_reconciliations", in_flight=len(pending))
        done, still_pending = await asyncio.wait(pending, timeout=timeout)

        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            logger.warning("reconciliations_cancelled", count=len(still_pending))

        return not still_pending

    def stats(self) -> dict:
        return {
            "in_flight": self.in_flight,
            "completed": self.completed,
            "failed": self.failed,
            "max_concurrency": self.max_concurrency,
        }

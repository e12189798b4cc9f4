"""Acknowledgement messages for ``file:update``.

Every accepted notification gets two replies: the immediate ``received``
ack returned from the event handler, and a final result emitted on
``file:update:ack`` once reconciliation finishes.
"""

from typing import Any, Dict

from ..sync.models import ChangeNotification, ReconciliationOutcome
from ..utils.logging import get_logger
from .session import SessionRegistry

logger = get_logger("workspace-sync.acks")

FINAL_RESULT_EVENT = "file:update:ack"
RECEIVED_MESSAGE = "File update received, processing..."


def received_ack(notification: ChangeNotification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "status": "received",
        "message": RECEIVED_MESSAGE,
    }


def error_ack(message: str) -> Dict[str, Any]:
    return {"status": "error", "message": message}


class AcknowledgementEmitter:
    """Routes final results to the connection that submitted them."""

    def __init__(self, sessions: SessionRegistry):
        self.sessions = sessions

    def send(self, sid: str, event: str, data: Any) -> bool:
        """Queue ``event`` on connection ``sid``; False if it is gone."""
        session = self.sessions.get(sid)
        if session is None:
            logger.warning("message_undeliverable", sid=sid, event_name=event)
            return False
        return session.send(event, data)

    async def send_final(self, sid: str, outcome: ReconciliationOutcome) -> bool:
        """Deliver the final result for a reconciled notification."""
        logger.debug(
            "sending_final_result",
            sid=sid,
            correlation_id=outcome.correlation_id,
            file=outcome.file_path,
            status=outcome.status.value,
            message=outcome.message,
        )
        return self.send(sid, FINAL_RESULT_EVENT, outcome.to_wire())

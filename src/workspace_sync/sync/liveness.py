"""Ping/pong and heartbeat handling.

Both exchanges are stateless: they only echo timestamps and identifiers and
never touch the reconciliation engine or the store.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..utils.logging import get_logger

logger = get_logger("workspace-sync.liveness")

PONG_MESSAGE = "Pong from workspace sync server"


class PingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    timestamp: int = 0
    message: str = ""
    socket_id: str = Field(default="", alias="socketId")


class HeartbeatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = ""
    timestamp: int = 0
    client_id: str = Field(default="", alias="clientId")


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_pong(sid: str, payload: Any) -> Optional[Dict[str, Any]]:
    """Build the ``test:pong`` body for a ``test:ping`` payload.

    Returns None (no reply) when the payload is not a JSON string describing
    a ping.
    """
    if not isinstance(payload, str):
        logger.debug("ping_payload_ignored", sid=sid, payload_type=type(payload).__name__)
        return None

    try:
        ping = PingRequest.model_validate_json(payload)
    except PydanticValidationError as e:
        logger.error("ping_parse_failed", sid=sid, error_count=e.error_count())
        return None

    logger.debug("ping_received", sid=sid, message=ping.message)
    return {
        "timestamp": _now_ms(),
        "serverTime": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "message": PONG_MESSAGE,
        "receivedPing": ping.model_dump(by_alias=True),
        "socketId": sid,
        "serverStatus": "ok",
    }


def build_heartbeat_ack(sid: str, *args: Any) -> Dict[str, Any]:
    """Build the acknowledgement for a ``heartbeat`` event."""
    if not args:
        return {"status": "error", "message": "No heartbeat data"}

    payload = args[0]
    try:
        if isinstance(payload, str):
            heartbeat = HeartbeatRequest.model_validate_json(payload)
        elif isinstance(payload, dict):
            heartbeat = HeartbeatRequest.model_validate(payload)
        else:
            raise TypeError(f"unsupported heartbeat payload: {type(payload).__name__}")
    except (PydanticValidationError, TypeError) as e:
        logger.error("heartbeat_parse_failed", sid=sid, error=str(e))
        return {"status": "error", "message": "Invalid heartbeat data"}

    logger.debug("heartbeat_received", sid=sid, client_id=heartbeat.client_id)
    return {
        "status": "ok",
        "serverTime": _now_ms(),
        "socketId": sid,
    }

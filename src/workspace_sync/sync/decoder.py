"""Decode ``file:update`` payloads into ChangeNotification records.

The two payload variants are decoded with different strictness: a JSON
string must be a well-formed object with correctly typed fields, while an
already-structured map is read best-effort, skipping any field whose value
has an unexpected type.
"""

import math
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from ..utils.errors import PayloadError
from ..utils.logging import get_logger
from .models import ChangeNotification, Payload, RawString, StructuredMap

logger = get_logger("workspace-sync.decoder")

INVALID_DATA_FORMAT = "Invalid data format"

_TEXT_FIELDS = (
    "id",
    "filePath",
    "hash",
    "event",
    "content",
    "previousHash",
    "apiKey",
    "workspacePath",
)


def decode_payload(payload: Payload) -> ChangeNotification:
    """Decode a classified payload into a ChangeNotification.

    Raises:
        PayloadError: if a RawString payload is not a valid notification
    """
    if isinstance(payload, RawString):
        return _decode_raw_string(payload)
    if isinstance(payload, StructuredMap):
        return _decode_structured_map(payload)
    raise PayloadError(INVALID_DATA_FORMAT)


def _decode_raw_string(payload: RawString) -> ChangeNotification:
    try:
        return ChangeNotification.model_validate_json(payload.text, strict=True)
    except PydanticValidationError as e:
        logger.error(
            "payload_parse_failed",
            error_count=e.error_count(),
            first_error=e.errors()[0]["msg"] if e.error_count() else None,
        )
        raise PayloadError(INVALID_DATA_FORMAT, cause=e) from e


def _decode_structured_map(payload: StructuredMap) -> ChangeNotification:
    fields: Dict[str, Any] = {}
    for key in _TEXT_FIELDS:
        value = payload.data.get(key)
        if isinstance(value, str):
            fields[key] = value

    timestamp = payload.data.get("timestamp")
    if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool) \
            and math.isfinite(timestamp):
        fields["timestamp"] = int(timestamp)

    return ChangeNotification.model_validate(fields)


__all__ = ["decode_payload", "INVALID_DATA_FORMAT"]

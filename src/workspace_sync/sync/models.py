"""
Data model for workspace file synchronization.

``ChangeNotification`` is the canonical, immutable form of one file-system
event reported by a client. The store-side records (``Workspace``,
``WorkspaceFile``, ``User``) are plain dataclasses built from database rows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventKind(str, Enum):
    """File-system event kinds a client may report."""
    INITIAL_SCAN = "initial_scan"
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"

    @classmethod
    def parse(cls, value: str) -> Optional["EventKind"]:
        """Return the matching kind, or None for an unsupported value."""
        try:
            return cls(value)
        except ValueError:
            return None


class OutcomeStatus(str, Enum):
    """Terminal status of a reconciliation."""
    SUCCESS = "success"
    ERROR = "error"


class ChangeNotification(BaseModel):
    """One reported file-system event.

    Field names follow Python conventions; only the camelCase wire keys
    declared as aliases are accepted on input. Missing fields take their
    zero value.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = ""
    file_path: str = Field(default="", alias="filePath")
    content_hash: str = Field(default="", alias="hash")
    event_kind: str = Field(default="", alias="event")
    content: str = ""
    previous_hash: str = Field(default="", alias="previousHash")
    timestamp: int = 0
    credential: str = Field(default="", alias="apiKey", repr=False)
    workspace_root: str = Field(default="", alias="workspacePath")

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_zero(cls, v, info):
        # JSON null leaves a field at its zero value
        if v is None:
            return 0 if info.field_name == "timestamp" else ""
        return v


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Result of reconciling one notification."""
    status: OutcomeStatus
    message: str
    file_path: str
    correlation_id: str

    @classmethod
    def success(cls, notification: ChangeNotification, message: str) -> "ReconciliationOutcome":
        return cls(OutcomeStatus.SUCCESS, message, notification.file_path, notification.id)

    @classmethod
    def failure(cls, notification: ChangeNotification, message: str) -> "ReconciliationOutcome":
        return cls(OutcomeStatus.ERROR, message, notification.file_path, notification.id)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def to_wire(self) -> Dict[str, Any]:
        """Final-result message body sent on ``file:update:ack``."""
        return {
            "id": self.correlation_id,
            "status": self.status.value,
            "message": self.message,
            "file": self.file_path,
        }


# Payload variants

@dataclass(frozen=True)
class RawString:
    """A payload delivered as a serialized JSON document."""
    text: str


@dataclass(frozen=True)
class StructuredMap:
    """A payload delivered as an already-decoded key/value map."""
    data: Dict[str, Any]


Payload = Union[RawString, StructuredMap]


def classify_payload(value: Any) -> Optional[Payload]:
    """Wrap an incoming event argument in its payload variant.

    Returns None when the value is neither a string nor a map.
    """
    if isinstance(value, str):
        return RawString(value)
    if isinstance(value, dict):
        return StructuredMap(value)
    return None


# Store records

@dataclass
class User:
    """A user resolved from an API key."""
    id: str
    name: str
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class Workspace:
    """A user's workspace, identified by ``(user_id, root_path)``."""
    id: str
    user_id: str
    root_path: str
    name: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class WorkspaceFile:
    """A stored file, identified by ``(workspace_id, path)``."""
    id: str
    user_id: str
    workspace_id: str
    path: str
    content: str
    content_hash: str
    size: int = 0
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class CreateFileRequest:
    """Parameters for creating a workspace file."""
    user_id: str
    workspace_id: str
    path: str
    content: str
    content_hash: str


@dataclass(frozen=True)
class FileMeta:
    """A file submitted to the content indexer."""
    path: str
    language: str
    content: str


__all__ = [
    "EventKind",
    "OutcomeStatus",
    "ChangeNotification",
    "ReconciliationOutcome",
    "RawString",
    "StructuredMap",
    "Payload",
    "classify_payload",
    "User",
    "Workspace",
    "WorkspaceFile",
    "CreateFileRequest",
    "FileMeta",
]

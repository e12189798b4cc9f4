"""
Error hierarchy for the workspace sync server.

Every failure raised by the stores, the identity resolver and the payload
decoder derives from ``SyncError``. The reconciliation engine catches these
at its boundary and turns them into the status string reported to the
client, so none of them ever reaches the connection layer.
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    SYSTEM = "system"
    DATABASE = "database"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    USER_INPUT = "user_input"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=datetime.utcnow)
    correlation_id: Optional[str] = None
    user_id: Optional[str] = None
    workspace_id: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class SyncError(Exception):
    """Base exception for all workspace sync errors."""

    code: str = "SYNC_ERROR"
    default_message: str = "An error occurred in the workspace sync server"
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message or self.default_message
        self.context = context or ErrorContext()
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "category": self.category.value,
                "context": {
                    "timestamp": self.context.timestamp.isoformat(),
                    "correlation_id": self.context.correlation_id,
                    "component": self.context.component,
                    "operation": self.context.operation,
                    "metadata": self.context.metadata,
                },
            }
        }


class ConfigurationError(SyncError):
    """Configuration errors."""
    code = "CONFIG_ERROR"
    default_message = "Configuration error"
    category = ErrorCategory.CONFIGURATION


# Storage errors

class DatabaseError(SyncError):
    """Database-related errors."""
    code = "DATABASE_ERROR"
    default_message = "Database error occurred"
    category = ErrorCategory.DATABASE


class StoreError(DatabaseError):
    """A workspace store operation was rejected."""
    code = "STORE_ERROR"
    default_message = "Workspace store operation failed"


class NotFoundError(StoreError):
    """The requested record does not exist."""
    code = "NOT_FOUND"
    default_message = "record not found"
    severity = ErrorSeverity.WARNING


class WorkspaceError(StoreError):
    """A workspace could not be resolved or created."""
    code = "WORKSPACE_ERROR"
    default_message = "Failed to ensure workspace"


class IndexingError(SyncError):
    """The content indexer failed to record a file."""
    code = "INDEXING_ERROR"
    default_message = "Failed to index file"
    severity = ErrorSeverity.WARNING
    category = ErrorCategory.INTERNAL


# Input errors

class PayloadError(SyncError):
    """An incoming event payload could not be decoded."""
    code = "PAYLOAD_ERROR"
    default_message = "Invalid data format"
    category = ErrorCategory.USER_INPUT
    severity = ErrorSeverity.WARNING


class AuthenticationError(SyncError):
    """Authentication errors."""
    code = "AUTH_ERROR"
    default_message = "Authentication failed"
    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.WARNING


__all__ = [
    'SyncError',
    'ErrorContext',
    'ErrorSeverity',
    'ErrorCategory',
    'ConfigurationError',
    'DatabaseError',
    'StoreError',
    'NotFoundError',
    'WorkspaceError',
    'IndexingError',
    'PayloadError',
    'AuthenticationError',
]

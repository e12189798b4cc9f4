"""
Tests for the error hierarchy.
"""

from workspace_sync.utils.errors import (
    AuthenticationError,
    DatabaseError,
    ErrorContext,
    NotFoundError,
    PayloadError,
    StoreError,
    SyncError,
    WorkspaceError,
)


class TestSyncError:
    """Test error construction and serialization."""

    def test_default_message(self):
        assert NotFoundError().message == "record not found"
        assert PayloadError().message == "Invalid data format"

    def test_str_is_message(self):
        assert str(AuthenticationError("user not found")) == "user not found"

    def test_hierarchy(self):
        assert issubclass(NotFoundError, StoreError)
        assert issubclass(WorkspaceError, StoreError)
        assert issubclass(StoreError, DatabaseError)
        assert issubclass(DatabaseError, SyncError)

    def test_cause_is_kept(self):
        cause = OSError("disk")
        error = DatabaseError("write failed", cause=cause)

        assert error.cause is cause

    def test_to_dict(self):
        error = NotFoundError(
            "file not found: a.py",
            context=ErrorContext(correlation_id="c-1", component="store", operation="get_file_by_path"),
        )

        body = error.to_dict()["error"]

        assert body["code"] == "NOT_FOUND"
        assert body["message"] == "file not found: a.py"
        assert body["severity"] == "warning"
        assert body["category"] == "database"
        assert body["context"]["correlation_id"] == "c-1"
        assert body["context"]["operation"] == "get_file_by_path"

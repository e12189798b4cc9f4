"""
Pytest configuration and shared fixtures for workspace sync tests.
"""

import pytest
import pytest_asyncio
import shutil
import tempfile
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Tuple
from unittest.mock import AsyncMock

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from workspace_sync.storage.database import Database
from workspace_sync.storage.indexer import ContentIndexer
from workspace_sync.storage.users import IdentityResolver
from workspace_sync.storage.workspaces import WorkspaceStore
from workspace_sync.sync.models import ChangeNotification, User, Workspace, WorkspaceFile


class FakeGateway:
    """Records emissions in place of a live ``socketio.AsyncServer``."""

    def __init__(self):
        self.emitted: List[Tuple[str, Any, Optional[str]]] = []
        self.handlers: Dict[str, Any] = {}

    async def emit(self, event: str, data: Any = None, to: Optional[str] = None, **kwargs) -> None:
        self.emitted.append((event, data, to))

    def on(self, event: str, handler=None, namespace=None):
        self.handlers[event] = handler

    def emitted_to(self, sid: str, event: Optional[str] = None) -> List[Any]:
        return [
            data for (name, data, to) in self.emitted
            if to == sid and (event is None or name == event)
        ]


def make_notification(**overrides) -> ChangeNotification:
    """Build a notification with sensible defaults."""
    fields = {
        "id": "n-1",
        "filePath": "src/main.py",
        "hash": "hash-1",
        "event": "added",
        "content": "print('hello')\n",
        "timestamp": 1700000000000,
        "apiKey": "key-1",
        "workspacePath": "/home/dev/project",
    }
    fields.update(overrides)
    return ChangeNotification.model_validate(fields)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


@pytest_asyncio.fixture
async def database(temp_dir: Path) -> AsyncGenerator[Database, None]:
    """Create a test database with the full schema."""
    db = Database(temp_dir / "test.db")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def identity(database: Database) -> IdentityResolver:
    return IdentityResolver(database)


@pytest.fixture
def store(database: Database) -> WorkspaceStore:
    return WorkspaceStore(database)


@pytest.fixture
def indexer(database: Database) -> ContentIndexer:
    return ContentIndexer(database)


@pytest_asyncio.fixture
async def user_and_key(identity: IdentityResolver) -> Tuple[User, str]:
    """A stored user and its plaintext API key."""
    return await identity.create_user("alice")


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def user() -> User:
    return User(id="user-1", name="alice")


@pytest.fixture
def workspace() -> Workspace:
    return Workspace(id="ws-1", user_id="user-1", root_path="/home/dev/project", name="project")


@pytest.fixture
def existing_file() -> WorkspaceFile:
    return WorkspaceFile(
        id="file-1",
        user_id="user-1",
        workspace_id="ws-1",
        path="src/main.py",
        content="print('hello')\n",
        content_hash="hash-1",
    )


@pytest.fixture
def mock_identity(user: User) -> AsyncMock:
    identity = AsyncMock(spec=IdentityResolver)
    identity.resolve_by_credential.return_value = user
    return identity


@pytest.fixture
def mock_store(workspace: Workspace) -> AsyncMock:
    store = AsyncMock(spec=WorkspaceStore)
    store.ensure_workspace.return_value = workspace
    return store


@pytest.fixture
def mock_indexer() -> AsyncMock:
    indexer = AsyncMock(spec=ContentIndexer)
    indexer.index_files.return_value = 1
    return indexer

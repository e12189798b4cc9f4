"""Identity resolution from API keys."""

import hashlib
import secrets
import uuid
from datetime import datetime
from typing import Tuple

import aiosqlite

from ..sync.models import User
from ..utils.errors import AuthenticationError, DatabaseError
from ..utils.logging import get_logger
from .database import Database

logger = get_logger("workspace-sync.users")


def hash_api_key(api_key: str) -> str:
    """Digest under which an API key is stored."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


class IdentityResolver:
    """Resolves the acting user from the API key carried by a notification.

    Keys are never stored in the clear; lookups compare SHA-256 digests.
    """

    def __init__(self, db: Database):
        self.db = db

    async def resolve_by_credential(self, api_key: str) -> User:
        """
        Look up the user owning ``api_key``.

        Raises:
            AuthenticationError: if the key is empty or unknown
            DatabaseError: if the lookup itself fails
        """
        if not api_key:
            raise AuthenticationError("API key is required")

        try:
            row = await self.db.fetchone(
                "SELECT id, name, created_at FROM users WHERE api_key_hash = ?",
                (hash_api_key(api_key),),
            )
        except aiosqlite.Error as e:
            raise DatabaseError(f"user lookup failed: {e}", cause=e) from e

        if row is None:
            raise AuthenticationError("user not found")

        return User(
            id=row["id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def create_user(self, name: str) -> Tuple[User, str]:
        """
        Create a user with a freshly generated API key.

        Returns:
            The new user and the plaintext API key (shown once)
        """
        api_key = f"wsk_{secrets.token_urlsafe(32)}"
        user = User(id=str(uuid.uuid4()), name=name)

        try:
            await self.db.execute(
                "INSERT INTO users (id, name, api_key_hash, created_at) VALUES (?, ?, ?, ?)",
                (user.id, user.name, hash_api_key(api_key), user.created_at.isoformat()),
            )
        except aiosqlite.Error as e:
            raise DatabaseError(f"failed to create user: {e}", cause=e) from e

        logger.info("user_created", user_id=user.id, name=name)
        return user, api_key

"""User service for database operations."""

import asyncio
from typing import Optional
from models.user import User


class UserService:
    """Service for looking up and creating users."""

    def __init__(self, db_manager):
        self.db_manager = db_manager

    async def find(self, user_id: int) -> Optional[User]:
        """Get a user by ID, or None if it does not exist."""
        return await asyncio.to_thread(self._find, user_id)

    async def create(self, email: str, display_name: Optional[str] = None) -> User:
        """Create a new user.

        Raises:
            sqlite3.IntegrityError: If the email is already registered.
        """
        return await asyncio.to_thread(self._create, email, display_name)

    def _find(self, user_id: int) -> Optional[User]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                "SELECT id, email, display_name FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()

            if row:
                return User(id=row[0], email=row[1], display_name=row[2])
            return None

    def _create(self, email: str, display_name: Optional[str]) -> User:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO users (email, display_name) VALUES (?, ?)",
                (email, display_name),
            )
            conn.commit()
            return User(id=cursor.lastrowid, email=email, display_name=display_name)

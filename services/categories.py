"""Category service for database operations.

Public methods are coroutines; the blocking sqlite3 work runs on a worker
thread so other requests keep running while a query waits on the database.
"""

import asyncio
from decimal import Decimal
from typing import List, Optional
from models.category import Category, DEFAULT_CATEGORY_COLOR

_CATEGORY_SELECT_FIELDS = (
    "id, user_id, name, is_income, budget_limit, color, description"
)


class CategoryService:
    """Service for managing a user's categories."""

    def __init__(self, db_manager):
        """Initialize the category service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    async def find_all(self, user_id: int) -> List[Category]:
        """Get all categories owned by a user.

        Args:
            user_id: Owner of the categories.

        Returns:
            List of Category objects, ordered by name.
        """
        return await asyncio.to_thread(self._find_all, user_id)

    async def find(self, category_id: int) -> Optional[Category]:
        """Get a single category by ID.

        Args:
            category_id: The category ID to find.

        Returns:
            Category object if found, None otherwise.
        """
        return await asyncio.to_thread(self._find, category_id)

    async def find_by_name(self, user_id: int, name: str) -> Optional[Category]:
        """Get one of a user's categories by name, ignoring case.

        Args:
            user_id: Owner of the category.
            name: The category name to find.

        Returns:
            Category object if found, None otherwise.
        """
        return await asyncio.to_thread(self._find_by_name, user_id, name)

    async def create(
        self,
        user_id: int,
        name: str,
        is_income: bool = False,
        budget_limit: Optional[Decimal] = None,
        color: str = DEFAULT_CATEGORY_COLOR,
        description: Optional[str] = None,
    ) -> Category:
        """Create a new category.

        Returns:
            The created Category object with id populated.

        Raises:
            sqlite3.IntegrityError: If the user already has a category with
                this name (case-insensitive).
        """
        category = Category(
            id=None,
            user_id=user_id,
            name=name,
            is_income=is_income,
            budget_limit=budget_limit,
            color=color,
            description=description,
        )
        return await asyncio.to_thread(self._create, category)

    async def update(self, category: Category) -> Category:
        """Save changes to an existing category.

        Raises:
            Exception: If category not found.
        """
        return await asyncio.to_thread(self._update, category)

    async def delete(self, category_id: int) -> bool:
        """Delete a category by ID.

        Transactions in the category become uncategorized and rules that
        point at it are removed, so nothing references a missing category.

        Returns:
            True if category was deleted, False if not found.
        """
        return await asyncio.to_thread(self._delete, category_id)

    def _find_all(self, user_id: int) -> List[Category]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_CATEGORY_SELECT_FIELDS} FROM categories
                WHERE user_id = ?
                ORDER BY name COLLATE NOCASE
                """,
                (user_id,),
            )
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def _find(self, category_id: int) -> Optional[Category]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories WHERE id = ?",
                (category_id,),
            ).fetchone()

            if row:
                return self._row_to_category(row)
            return None

    def _find_by_name(self, user_id: int, name: str) -> Optional[Category]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"""
                SELECT {_CATEGORY_SELECT_FIELDS} FROM categories
                WHERE user_id = ? AND name = ? COLLATE NOCASE
                """,
                (user_id, name.strip()),
            ).fetchone()

            if row:
                return self._row_to_category(row)
            return None

    def _create(self, category: Category) -> Category:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO categories
                    (user_id, name, is_income, budget_limit, color, description)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    category.user_id,
                    category.name,
                    int(category.is_income),
                    (
                        str(category.budget_limit)
                        if category.budget_limit is not None
                        else None
                    ),
                    category.color,
                    category.description,
                ),
            )
            conn.commit()

            category.id = cursor.lastrowid
            return category

    def _update(self, category: Category) -> Category:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE categories
                SET name = ?, is_income = ?, budget_limit = ?, color = ?, description = ?
                WHERE id = ?
                """,
                (
                    category.name,
                    int(category.is_income),
                    (
                        str(category.budget_limit)
                        if category.budget_limit is not None
                        else None
                    ),
                    category.color,
                    category.description,
                    category.id,
                ),
            )
            conn.commit()

            if cursor.rowcount == 0:
                raise Exception(f"Category with ID {category.id} not found")

            return category

    def _delete(self, category_id: int) -> bool:
        with self.db_manager.transaction() as conn:
            conn.execute(
                """
                UPDATE transactions
                SET category_id = NULL,
                    categorization_method = NULL,
                    categorization_confidence = 0
                WHERE category_id = ?
                """,
                (category_id,),
            )
            conn.execute(
                "DELETE FROM category_rules WHERE category_id = ?", (category_id,)
            )
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            return cursor.rowcount > 0

    def _row_to_category(self, row: tuple) -> Category:
        return Category(
            id=row[0],
            user_id=row[1],
            name=row[2],
            is_income=bool(row[3]),
            budget_limit=Decimal(row[4]) if row[4] is not None else None,
            color=row[5],
            description=row[6],
        )

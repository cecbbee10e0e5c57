"""Category model for transaction categorization."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

DEFAULT_CATEGORY_COLOR = "#6B7280"


@dataclass
class Category:
    """Represents a user-defined transaction category.

    Attributes:
        id: Unique identifier (auto-generated).
        user_id: ID of the user who owns the category.
        name: Category name (unique per user, compared case-insensitively).
        is_income: True for income categories, False for expense categories.
        budget_limit: Optional monthly budget limit.
        color: Hex color code used by the UI.
        description: Optional description of what belongs in this category.
    """

    id: int
    user_id: int
    name: str
    is_income: bool = False
    budget_limit: Optional[Decimal] = None
    color: str = DEFAULT_CATEGORY_COLOR
    description: Optional[str] = None

    def matches_name(self, name: Optional[str]) -> bool:
        """Check whether `name` refers to this category, ignoring case."""
        if not name:
            return False
        return self.name.strip().lower() == name.strip().lower()


def find_category_by_name(categories, name: Optional[str]) -> Optional[Category]:
    """Return the first category whose name matches `name` case-insensitively."""
    for category in categories:
        if category.matches_name(name):
            return category
    return None

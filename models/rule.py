"""Per-user categorization rule model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Rule:
    """A remembered merchant -> category association for one user.

    Attributes:
        id: Unique identifier (auto-generated).
        user_id: Owner of the rule.
        category_id: Category the merchant maps to.
        merchant_pattern: Normalized merchant string (unique per user).
        confidence: Grows with each confirmation, capped at 1.0.
        match_count: Number of confirmations seen.
        last_matched: When the rule was last confirmed.
    """

    id: int
    user_id: int
    category_id: int
    merchant_pattern: str
    confidence: float
    match_count: int
    last_matched: Optional[datetime] = None

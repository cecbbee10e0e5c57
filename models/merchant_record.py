"""Anonymized community merchant record."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class MerchantRecord:
    """Shared cross-user knowledge about one merchant.

    The merchant itself is only known by the SHA-256 hash of its normalized
    name. Nothing here links back to a user, a rule or a transaction.

    Attributes:
        id: Unique identifier (auto-generated).
        merchant_hash: Hex SHA-256 of the normalized merchant string.
        embedding: Semantic embedding of the normalized merchant string.
        category_name: Lower-cased category name contributed by users.
        confidence: Grows with each contribution, capped at 1.0.
        usage_count: Number of contributions received.
        last_updated: Time of the latest contribution.
    """

    id: int
    merchant_hash: str
    embedding: List[float] = field(repr=False)
    category_name: str
    confidence: float
    usage_count: int
    last_updated: Optional[datetime] = None

"""Rule service: per-user merchant -> category memory."""

import asyncio
from datetime import datetime
from typing import List, Optional
from models.rule import Rule

_RULE_SELECT_FIELDS = (
    "id, user_id, category_id, merchant_pattern, confidence, match_count, last_matched"
)


class RuleService:
    """Service for reading and upserting categorization rules."""

    def __init__(self, db_manager):
        """Initialize the rule service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    async def find(self, user_id: int, merchant_pattern: str) -> Optional[Rule]:
        """Get the highest-confidence rule for an exact (user, merchant) pair.

        Args:
            user_id: Owner of the rule.
            merchant_pattern: Normalized merchant string.

        Returns:
            Rule if one exists, None otherwise.
        """
        return await asyncio.to_thread(self._find, user_id, merchant_pattern)

    async def find_all(self, user_id: int) -> List[Rule]:
        """Get all of a user's rules, strongest first."""
        return await asyncio.to_thread(self._find_all, user_id)

    async def upsert(
        self,
        user_id: int,
        merchant_pattern: str,
        category_id: int,
        seed_confidence: float = 0.8,
        confidence_step: float = 0.1,
        confidence_cap: float = 1.0,
    ) -> Rule:
        """Record a confirmed categorization of a merchant.

        A new (user, merchant) pair starts at `seed_confidence` with one
        match. An existing rule is pointed at `category_id`, gains
        `confidence_step` (capped at `confidence_cap`) and one match. The
        whole read-modify-write is a single statement keyed on the unique
        (user_id, merchant_pattern) index, so concurrent confirmations
        cannot lose updates.

        Returns:
            The rule as stored after the upsert.
        """
        return await asyncio.to_thread(
            self._upsert,
            user_id,
            merchant_pattern,
            category_id,
            seed_confidence,
            confidence_step,
            confidence_cap,
        )

    def _find(self, user_id: int, merchant_pattern: str) -> Optional[Rule]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"""
                SELECT {_RULE_SELECT_FIELDS} FROM category_rules
                WHERE user_id = ? AND merchant_pattern = ?
                ORDER BY confidence DESC
                LIMIT 1
                """,
                (user_id, merchant_pattern),
            ).fetchone()

            if row:
                return self._row_to_rule(row)
            return None

    def _find_all(self, user_id: int) -> List[Rule]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_RULE_SELECT_FIELDS} FROM category_rules
                WHERE user_id = ?
                ORDER BY confidence DESC, merchant_pattern
                """,
                (user_id,),
            )
            return [self._row_to_rule(row) for row in cursor.fetchall()]

    def _upsert(
        self,
        user_id: int,
        merchant_pattern: str,
        category_id: int,
        seed_confidence: float,
        confidence_step: float,
        confidence_cap: float,
    ) -> Rule:
        now = datetime.now().isoformat(timespec="seconds")

        with self.db_manager.connect() as conn:
            conn.execute(
                """
                INSERT INTO category_rules
                    (user_id, category_id, merchant_pattern, confidence,
                     match_count, last_matched, updated_at)
                VALUES (?, ?, ?, ?, 1, ?, ?)
                ON CONFLICT (user_id, merchant_pattern) DO UPDATE SET
                    category_id = excluded.category_id,
                    confidence = ROUND(MIN(?, category_rules.confidence + ?), 6),
                    match_count = category_rules.match_count + 1,
                    last_matched = excluded.last_matched,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    category_id,
                    merchant_pattern,
                    min(confidence_cap, seed_confidence),
                    now,
                    now,
                    confidence_cap,
                    confidence_step,
                ),
            )
            conn.commit()

            row = conn.execute(
                f"""
                SELECT {_RULE_SELECT_FIELDS} FROM category_rules
                WHERE user_id = ? AND merchant_pattern = ?
                """,
                (user_id, merchant_pattern),
            ).fetchone()

            return self._row_to_rule(row)

    def _row_to_rule(self, row: tuple) -> Rule:
        return Rule(
            id=row[0],
            user_id=row[1],
            category_id=row[2],
            merchant_pattern=row[3],
            confidence=row[4],
            match_count=row[5],
            last_matched=datetime.fromisoformat(row[6]) if row[6] else None,
        )

"""Community corpus service: anonymized merchant embeddings shared by all users.

Merchants are keyed only by the hash of their normalized name. None of the
methods here accept a merchant string, which keeps plaintext merchant names
out of the shared table.
"""

import asyncio
import json
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import numpy as np

from models.merchant_record import MerchantRecord

_RECORD_SELECT_FIELDS = (
    "id, merchant_hash, embedding, category_name, confidence, usage_count, last_updated"
)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, 0.0 when undefined."""
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    scores = cosine_similarities(np.asarray([a], dtype=float), np.asarray(b, dtype=float))
    return float(scores[0])


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of every row of `matrix` against `query`.

    Rows with zero norm score 0.0, as does everything for a zero query.
    """
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.zeros(len(matrix), dtype=float)
    np.divide(dots, norms, out=scores, where=norms > 0)
    return scores


def rank_by_similarity(
    records: List[MerchantRecord],
    embedding: Sequence[float],
    min_similarity: float,
    limit: int,
) -> List[Tuple[MerchantRecord, float]]:
    """Score records against `embedding`, keep those above the floor, best first.

    Records whose embedding has a different dimension than the query are
    skipped.
    """
    query = np.asarray(embedding, dtype=float)
    candidates = [r for r in records if len(r.embedding) == len(query)]
    if not candidates or len(query) == 0 or limit <= 0:
        return []

    matrix = np.asarray([r.embedding for r in candidates], dtype=float)
    scores = cosine_similarities(matrix, query)

    # Stable sort keeps insertion order among equal scores
    order = np.argsort(-scores, kind="stable")
    ranked = []
    for index in order:
        if scores[index] <= min_similarity:
            break
        ranked.append((candidates[index], float(scores[index])))
        if len(ranked) == limit:
            break
    return ranked


class CommunityCorpusService:
    """Service for the anonymized cross-user merchant corpus."""

    def __init__(self, db_manager):
        """Initialize the community corpus service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    async def find_by_hash(self, merchant_hash: str) -> Optional[MerchantRecord]:
        """Get the corpus record for a merchant hash.

        Args:
            merchant_hash: SHA-256 hex digest of a normalized merchant.

        Returns:
            MerchantRecord if present, None otherwise.
        """
        return await asyncio.to_thread(self._find_by_hash, merchant_hash)

    async def nearest_neighbors(
        self, embedding: Sequence[float], min_similarity: float, limit: int
    ) -> List[Tuple[MerchantRecord, float]]:
        """Find corpus records semantically close to `embedding`.

        Args:
            embedding: Query vector.
            min_similarity: Only records with cosine similarity strictly
                            above this value are returned.
            limit: Maximum number of records returned.

        Returns:
            List of (record, similarity) pairs, most similar first.
        """
        return await asyncio.to_thread(
            self._nearest_neighbors, list(embedding), min_similarity, limit
        )

    async def upsert_by_hash(
        self,
        merchant_hash: str,
        embedding: Sequence[float],
        category_name: str,
        seed_confidence: float = 0.8,
        confidence_step: float = 0.05,
        confidence_cap: float = 1.0,
    ) -> MerchantRecord:
        """Add a contribution for a merchant hash.

        A new hash is inserted with `embedding`, `category_name` and
        `seed_confidence`. An existing record keeps its embedding and
        category name; its usage count goes up by one and its confidence by
        `confidence_step`, capped at `confidence_cap`. Runs as one statement
        keyed on the unique merchant_hash index.

        Returns:
            The record as stored after the upsert.
        """
        return await asyncio.to_thread(
            self._upsert_by_hash,
            merchant_hash,
            list(embedding),
            category_name,
            seed_confidence,
            confidence_step,
            confidence_cap,
        )

    def _find_by_hash(self, merchant_hash: str) -> Optional[MerchantRecord]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"""
                SELECT {_RECORD_SELECT_FIELDS} FROM anonymized_merchants
                WHERE merchant_hash = ?
                """,
                (merchant_hash,),
            ).fetchone()

            if row:
                return self._row_to_record(row)
            return None

    def _nearest_neighbors(
        self, embedding: List[float], min_similarity: float, limit: int
    ) -> List[Tuple[MerchantRecord, float]]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_RECORD_SELECT_FIELDS} FROM anonymized_merchants"
            )
            records = [self._row_to_record(row) for row in cursor.fetchall()]

        return rank_by_similarity(records, embedding, min_similarity, limit)

    def _upsert_by_hash(
        self,
        merchant_hash: str,
        embedding: List[float],
        category_name: str,
        seed_confidence: float,
        confidence_step: float,
        confidence_cap: float,
    ) -> MerchantRecord:
        now = datetime.now().isoformat(timespec="seconds")

        with self.db_manager.connect() as conn:
            conn.execute(
                """
                INSERT INTO anonymized_merchants
                    (merchant_hash, embedding, category_name, confidence,
                     usage_count, last_updated)
                VALUES (?, ?, ?, ?, 1, ?)
                ON CONFLICT (merchant_hash) DO UPDATE SET
                    usage_count = anonymized_merchants.usage_count + 1,
                    confidence = ROUND(MIN(?, anonymized_merchants.confidence + ?), 6),
                    last_updated = excluded.last_updated
                """,
                (
                    merchant_hash,
                    json.dumps([float(x) for x in embedding]),
                    category_name,
                    min(confidence_cap, seed_confidence),
                    now,
                    confidence_cap,
                    confidence_step,
                ),
            )
            conn.commit()

            row = conn.execute(
                f"""
                SELECT {_RECORD_SELECT_FIELDS} FROM anonymized_merchants
                WHERE merchant_hash = ?
                """,
                (merchant_hash,),
            ).fetchone()

            return self._row_to_record(row)

    def _row_to_record(self, row: tuple) -> MerchantRecord:
        return MerchantRecord(
            id=row[0],
            merchant_hash=row[1],
            embedding=json.loads(row[2]),
            category_name=row[3],
            confidence=row[4],
            usage_count=row[5],
            last_updated=datetime.fromisoformat(row[6]) if row[6] else None,
        )

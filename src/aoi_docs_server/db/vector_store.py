"""
Vector Store

SQL-backed passage storage with brute-force cosine ranking.

Every query scans all stored passages (O(n * d)). That is the intended
trade-off for documentation-sized corpora; an approximate index can replace
`search` later without changing its contract.

Concurrency
-----------
Inserts go through a single `INSERT ... ON CONFLICT DO NOTHING` statement, so
the unique constraint on `fingerprint` decides concurrent upserts of the same
passage. Reads take no application-level locks.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import PassageRecord
from ..core.errors import VectorStoreError
from ..embeddings.models import Passage, SearchHit

logger = logging.getLogger("aoi.vector_store")


_INSERT_CONSTRUCTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


# ---------------------------------------------------------------------
# Vector Math
# ---------------------------------------------------------------------

def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """
    Cosine similarity of two vectors, clipped to [-1, 1].

    Returns 0.0 instead of raising when either vector is missing or empty,
    has zero norm, or the dimensions differ.
    """
    if a is None or b is None or len(a) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype="float64")
    vb = np.asarray(b, dtype="float64")

    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0 or not np.isfinite(denom):
        return 0.0

    score = float(np.dot(va, vb) / denom)
    return float(np.clip(score, -1.0, 1.0))


def _decode_embedding(raw: Optional[str]) -> Optional[List[float]]:
    """Parse a stored embedding; anything unreadable is treated as absent."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None

    if not isinstance(data, list):
        return None
    if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in data):
        return None
    return [float(x) for x in data]


def _to_passage(record: PassageRecord, embedding: Optional[List[float]] = None) -> Passage:
    return Passage(
        source_path=record.source_path,
        section_title=record.section_title,
        content=record.content,
        embedding=embedding or [],
        fingerprint=record.fingerprint,
        created_at=record.created_at,
    )


# ---------------------------------------------------------------------
# Vector Store
# ---------------------------------------------------------------------

class VectorStore:
    """
    Passage store bound to one async database session.

    The caller owns the transaction: `upsert` only flushes the statement,
    `commit` makes it durable.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize with an async database session.

        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        """
        self._session = session
        self._dimension: Optional[int] = None

    async def commit(self) -> None:
        """
        Commit the current transaction.
        """
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _insert_construct(self):
        dialect = self._session.get_bind().dialect.name
        construct = _INSERT_CONSTRUCTS.get(dialect)
        if construct is None:
            raise VectorStoreError(f"Unsupported database dialect: {dialect}")
        return construct

    async def _stored_dimension(self) -> Optional[int]:
        if self._dimension is not None:
            return self._dimension

        stmt = select(PassageRecord.embedding).order_by(PassageRecord.id).limit(1)
        raw = (await self._session.execute(stmt)).scalar_one_or_none()
        vector = _decode_embedding(raw)
        if vector:
            self._dimension = len(vector)
        return self._dimension

    async def _validate_embedding(self, embedding: Sequence[float]) -> None:
        if not embedding:
            raise VectorStoreError("Embedding vectors must be non-empty.")

        dimension = await self._stored_dimension()
        if dimension is not None and len(embedding) != dimension:
            raise VectorStoreError(
                f"Inconsistent embedding dimensionality: got {len(embedding)}, store holds {dimension}."
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def upsert(self, passage: Passage) -> bool:
        """
        Insert a passage unless its fingerprint is already stored.

        Returns
        -------
        bool
            True if a row was inserted, False if the fingerprint existed
            (in which case nothing is modified).

        Raises
        ------
        VectorStoreError
            If the embedding is empty or its dimension differs from the
            passages already stored.
        """
        await self._validate_embedding(passage.embedding)

        insert = self._insert_construct()
        stmt = (
            insert(PassageRecord)
            .values(
                source_path=passage.source_path,
                section_title=passage.section_title or None,
                content=passage.content,
                embedding=json.dumps(list(passage.embedding)),
                fingerprint=passage.fingerprint,
            )
            .on_conflict_do_nothing(index_elements=[PassageRecord.fingerprint])
            .returning(PassageRecord.id)
        )

        result = await self._session.execute(stmt)
        inserted = result.scalar_one_or_none() is not None

        if inserted and self._dimension is None:
            self._dimension = len(passage.embedding)

        return inserted

    async def has_fingerprint(self, fingerprint: str) -> bool:
        stmt = select(PassageRecord.id).where(PassageRecord.fingerprint == fingerprint).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_by_source(self, source_path: str, limit: int = 50) -> List[Passage]:
        """
        Return passages of one document in insertion order, unscored.

        Embeddings are not loaded; these passages feed metadata extraction,
        not ranking.
        """
        if not source_path:
            return []

        stmt = (
            select(PassageRecord)
            .where(PassageRecord.source_path == source_path)
            .order_by(PassageRecord.id)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [_to_passage(record) for record in result.scalars().all()]

    async def search(
        self,
        query_embedding: Sequence[float],
        k: int = 5,
    ) -> List[SearchHit]:
        """
        Rank every stored passage by cosine similarity to the query.

        Parameters
        ----------
        query_embedding : Sequence[float]
            Query vector.
        k : int
            Number of results to return.

        Returns
        -------
        List[SearchHit]
            Up to k hits ordered by descending score. Equal scores keep
            insertion order. A stored embedding that cannot be decoded
            scores 0.0.
        """
        if k <= 0:
            return []

        stmt = select(PassageRecord).order_by(PassageRecord.id)
        result = await self._session.execute(stmt)

        hits: List[SearchHit] = []
        corrupt = 0

        for record in result.scalars().all():
            vector = _decode_embedding(record.embedding)
            if vector is None:
                corrupt += 1
            score = cosine_similarity(query_embedding, vector)
            hits.append(SearchHit(passage=_to_passage(record, vector), score=score))

        if corrupt:
            logger.warning("Scored %d passages with undecodable embeddings as 0.0", corrupt)

        # sorted() is stable, so ties stay in insertion order
        hits = sorted(hits, key=lambda hit: hit.score, reverse=True)
        return hits[:k]

    async def count(self) -> int:
        stmt = select(func.count()).select_from(PassageRecord)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def get_stats(self) -> Dict[str, Any]:
        """
        Return statistics about the passage store.
        """
        total_passages = await self.count()

        sources_stmt = select(PassageRecord.source_path).distinct()
        sources_result = await self._session.execute(sources_stmt)
        sources = sorted(row[0] for row in sources_result.all())

        return {
            "total_passages": total_passages,
            "total_sources": len(sources),
            "sources": sources,
        }

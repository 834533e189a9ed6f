"""
Retrieval Service

Embeds free-text queries and ranks stored passages against them, with a
function-specific narrowing step for DSL documentation lookups.

Responsibilities
----------------
- Embed the query (one collaborator call per search)
- Delegate ranking to the vector store
- Narrow results to passages that document a named `$function`
- Assemble structured function documentation, widening recall from the
  store without a second embedding call when parameter details are sparse
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from ..config import settings
from ..core.errors import OperationCancelled
from ..db.vector_store import VectorStore
from ..embeddings.embedder import EmbeddingProvider
from ..embeddings.models import Passage, SearchHit
from .docs import (
    FunctionDocumentation,
    extract_function_metadata,
    normalize_function_name,
)

logger = logging.getLogger("aoi.retrieval")

FUNCTION_DOCS_SEGMENT = "/functions/"
FUNCTION_DESCRIBE_K = 50
SOURCE_ENRICHMENT_LIMIT = 50


# ---------------------------------------------------------------------
# Function Filtering
# ---------------------------------------------------------------------

def filter_function_results(function_name: str, results: Sequence[SearchHit]) -> List[SearchHit]:
    """
    Keep hits that look like documentation of one specific function.

    A hit is kept when its source path contains a `/functions/` segment
    AND either the final path segment contains the function name or the
    passage content contains the literal `$name` call prefix. Both checks
    are case-insensitive.

    Parameters
    ----------
    function_name : str
        Function name with or without the `$` sigil.

    results : Sequence[SearchHit]
        Ranked hits; their relative order is preserved.
    """
    lname = normalize_function_name(function_name)
    if not lname:
        return []

    call_prefix = f"${lname}"
    kept: List[SearchHit] = []

    for hit in results:
        path = (hit.passage.source_path or "").replace("\\", "/").lower()
        if FUNCTION_DOCS_SEGMENT not in path:
            continue

        basename = path.rsplit("/", 1)[-1]
        if lname in basename or call_prefix in hit.passage.content.lower():
            kept.append(hit)

    return kept


# ---------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------

class RetrievalService:
    """
    Request-scoped retrieval over one vector store.

    The service holds no state beyond its collaborators, so one instance per
    request (or per ingestion run) is the intended usage.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        vector_store: VectorStore,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Parameters
        ----------
        embedder : EmbeddingProvider
            Embedding collaborator used for every query.

        vector_store : VectorStore
            Store that ranks passages and serves same-source enrichment.

        timeout : Optional[float]
            Default bound, in seconds, for one search. None means unbounded.
        """
        self._embedder = embedder
        self._store = vector_store
        self._timeout = timeout

    async def _search(self, query: str, k: int) -> List[SearchHit]:
        query_embedding = await self._embedder.embed(query)
        return await self._store.search(query_embedding, k)

    async def search_by_text(
        self,
        query: str,
        k: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[SearchHit]:
        """
        Embed `query` and return the top-k passages by cosine similarity.

        Raises
        ------
        OperationCancelled
            If the search exceeded its timeout or was cancelled. Partial
            results are never returned.
        EmbeddingError
            If the embedding collaborator failed.
        """
        k = settings.top_k if k is None else k
        timeout = timeout if timeout is not None else self._timeout

        try:
            if timeout is None:
                return await self._search(query, k)
            return await asyncio.wait_for(self._search(query, k), timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Search timed out after %.1fs", timeout)
            raise OperationCancelled("Search timed out") from exc

    async def search_function(self, function_name: str, k: Optional[int] = None) -> List[SearchHit]:
        """Search for `$name` and keep only hits that document that function."""
        name = normalize_function_name(function_name)
        k = settings.function_search_k if k is None else k

        results = await self.search_by_text(f"${name}", k=k)
        return filter_function_results(name, results)[: settings.function_results_limit]

    async def top_function_score(self, function_name: str) -> float:
        """
        Best similarity among passages documenting `function_name`, or 0.0.

        This is the lookup the DSL validator classifies functions with.
        """
        filtered = await self.search_function(function_name)
        return filtered[0].score if filtered else 0.0

    async def enrich_from_sources(
        self,
        hits: Sequence[SearchHit],
        limit: int = SOURCE_ENRICHMENT_LIMIT,
    ) -> List[Passage]:
        """Every stored passage that shares a source path with one of `hits`."""
        sources = list(dict.fromkeys(h.passage.source_path for h in hits if h.passage.source_path))

        extra: List[Passage] = []
        for source in sources:
            extra.extend(await self._store.get_by_source(source, limit=limit))
        return extra

    async def describe_function(self, function_name: str) -> FunctionDocumentation:
        """
        Build structured documentation for one function.

        Below the similarity threshold an empty description is returned,
        carrying the best score as its confidence.
        """
        name = normalize_function_name(function_name)
        filtered = await self.search_function(name, k=FUNCTION_DESCRIBE_K)

        top_score = filtered[0].score if filtered else 0.0
        confidence = round(top_score, 4)

        if not filtered or top_score < settings.similarity_threshold:
            return FunctionDocumentation(function=f"${name}", confidence=confidence)

        passages = [hit.passage for hit in filtered]
        doc = extract_function_metadata(name, passages)

        if doc.needs_parameter_details:
            extra = await self.enrich_from_sources(filtered)
            if extra:
                logger.debug("Enriching $%s from %d same-source passages", name, len(extra))
                doc = extract_function_metadata(name, passages + extra)

        doc.confidence = confidence
        return doc

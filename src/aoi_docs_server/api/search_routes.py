"""
Search Routes

This module defines the vector-based semantic search endpoints backed by the
passage store. They expose ranked documentation passages without any
generation step.
"""

from fastapi import APIRouter, Depends, status
from typing import List, Annotated

from .models import SearchRequest, SearchResult, StoreStatsResponse
from .dependencies import get_retrieval_service, get_vector_store
from ..db import VectorStore
from ..retrieval.sanitize import sanitize_question
from ..retrieval.service import RetrievalService
from ..core.errors import InvalidInputError

router = APIRouter(prefix="/search", tags=["search"])


@router.post(
    "/",
    response_model=List[SearchResult],
    summary="Vector-based semantic search",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: SearchRequest,
    retrieval: Annotated[RetrievalService, Depends(get_retrieval_service)],
) -> List[SearchResult]:
    """
    Perform a vector-based semantic search over ingested documentation.

    Parameters
    ----------
    req : SearchRequest
        Contains:
        - query: Search query string
        - k: Number of top results to return

    Returns
    -------
    List[SearchResult]
        Ranked list of matching passages.
    """
    query = sanitize_question(req.query)
    if not query:
        raise InvalidInputError("Invalid query")

    # Collaborator and cancellation errors are mapped by the app-level handlers
    hits = await retrieval.search_by_text(query, k=req.k)
    return [SearchResult.from_hit(hit) for hit in hits]


@router.get(
    "/stats",
    response_model=StoreStatsResponse,
    summary="Get passage store statistics",
)
async def get_store_stats(
    vector_store: Annotated[VectorStore, Depends(get_vector_store)],
) -> StoreStatsResponse:
    return StoreStatsResponse(**await vector_store.get_stats())

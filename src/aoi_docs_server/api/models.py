"""
API Models

This module defines the Pydantic models used for request/response validation
across the search, query, function and validation endpoints.

Design Goals
------------
- Strong typing
- Safe defaults (no shared mutable state)
- Clear schema documentation
- Explicit output contracts
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict

from ..embeddings.models import SearchHit


# ---------------------------------------------------------------------
# Search Models
# ---------------------------------------------------------------------

class SearchRequest(BaseModel):
    """
    Free-text retrieval request.
    """
    query: str = Field(..., min_length=1, max_length=4000)
    k: int = Field(default=8, ge=1, le=100)

    model_config = ConfigDict(extra="forbid")


class SearchResult(BaseModel):
    """
    Individual ranked passage.
    """
    source_path: str = Field(..., min_length=1)
    section_title: Optional[str] = None
    content: str = Field(..., min_length=1)
    score: float = Field(..., ge=-1.0, le=1.0)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_hit(cls, hit: SearchHit) -> "SearchResult":
        return cls(
            source_path=hit.passage.source_path,
            section_title=hit.passage.section_title,
            content=hit.passage.content,
            score=hit.score,
        )


# ---------------------------------------------------------------------
# Question Answering Models
# ---------------------------------------------------------------------

class QueryResponse(BaseModel):
    """
    Answer (or generated code) grounded on retrieved documentation.
    """
    answer: Optional[str] = None
    code: Optional[str] = None
    sources: List[str] = Field(default_factory=list)
    confidence: float = 0.0

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Stats Models
# ---------------------------------------------------------------------

class StoreStatsResponse(BaseModel):
    """
    Statistics for the passage store.
    """
    total_passages: int = Field(..., ge=0)
    total_sources: int = Field(..., ge=0)
    sources: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

"""
Passage Data Models

This module defines the canonical data model used to represent a single
ingested documentation passage stored in the vector index.

Each instance corresponds to ONE embedding vector and ONE chunk of text.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, Field, ConfigDict


class Passage(BaseModel):
    """
    A single ingested documentation passage.

    This model is the authoritative schema for:
    - Vector store rows
    - Retrieval results
    - Context blocks handed to the generation collaborator
    """

    source_path: str = Field(
        ...,
        min_length=1,
        description="Identifier of the originating document (usually its file path).",
    )

    section_title: Optional[str] = Field(
        default=None,
        description="Heading under which the passage occurs.",
    )

    content: str = Field(
        ...,
        min_length=1,
        description="Normalized passage text.",
    )

    embedding: List[float] = Field(
        default_factory=list,
        description="Embedding vector. Empty when it was not loaded or could not be decoded.",
    )

    fingerprint: str = Field(
        ...,
        min_length=1,
        description="SHA-256 hex digest of `content`, unique across the store.",
    )

    created_at: Optional[datetime] = Field(
        default=None,
        description="Insertion timestamp, set by the store.",
    )

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


class SearchHit(NamedTuple):
    """A passage paired with its cosine similarity to the query."""
    passage: Passage
    score: float

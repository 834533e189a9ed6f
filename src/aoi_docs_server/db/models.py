"""
SQLAlchemy Models

Defines the database schema for ingested documentation passages.

Embeddings are stored as JSON text rather than a native vector column:
ranking is a full scan done in Python, so the column only has to round-trip
a list of floats on every supported backend.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Text,
    DateTime,
    Index,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Passage Model
# ---------------------------------------------------------------------

class PassageRecord(Base):
    """
    One row per ingested passage.

    `fingerprint` carries the uniqueness constraint that makes ingestion
    idempotent and resolves concurrent inserts of the same content.
    """
    __tablename__ = "docs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_path: Mapped[str] = mapped_column(Text, nullable=False)
    section_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[str] = mapped_column(Text, nullable=False)
    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_docs_source_path", "source_path"),
    )

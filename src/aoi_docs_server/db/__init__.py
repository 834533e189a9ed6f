"""
Database Package

Provides SQLAlchemy async session management, the passage table and the
vector store built on it.
"""

from .session import get_async_session, async_engine, AsyncSessionLocal, init_db
from .models import Base, PassageRecord
from .vector_store import VectorStore, cosine_similarity

__all__ = [
    "get_async_session",
    "async_engine",
    "AsyncSessionLocal",
    "init_db",
    "Base",
    "PassageRecord",
    "VectorStore",
    "cosine_similarity",
]

"""
Shared fixtures.

The store runs on an in-memory SQLite database; a single StaticPool
connection lets every session in a test see the same data. Embeddings come
from a keyword-rule fake so similarity scores are exact and predictable.
"""

from typing import Dict, List, Optional, Sequence

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from aoi_docs_server.db.models import Base
from aoi_docs_server.db.vector_store import VectorStore
from aoi_docs_server.embeddings.models import Passage
from aoi_docs_server.ingestion.chunker import fingerprint


class RuleEmbedder:
    """
    Maps text to the vector of the first marker it contains (case-insensitive).

    Text matching no marker gets `default`. Every call is recorded.
    """

    def __init__(self, rules: Dict[str, Sequence[float]], default: Sequence[float]):
        self.rules = {marker.lower(): list(vector) for marker, vector in rules.items()}
        self.default = list(default)
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        lowered = text.lower()
        for marker, vector in self.rules.items():
            if marker in lowered:
                return list(vector)
        return list(self.default)


def build_passage(
    content: str,
    embedding: Sequence[float],
    source_path: str = "/srv/website/docs/guides/intro.md",
    section_title: Optional[str] = "Intro",
) -> Passage:
    return Passage(
        source_path=source_path,
        section_title=section_title,
        content=content,
        embedding=list(embedding),
        fingerprint=fingerprint(content),
    )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session):
    return VectorStore(session)


@pytest.fixture
def embedder():
    return RuleEmbedder(
        {
            "alpha": [1.0, 0.0, 0.0],
            "beta": [0.0, 1.0, 0.0],
        },
        default=[0.0, 0.0, 1.0],
    )


@pytest.fixture
def make_passage():
    return build_passage

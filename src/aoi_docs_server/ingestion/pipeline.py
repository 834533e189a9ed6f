"""
Documentation Ingestion

Walks a documentation tree, chunks every markdown file and stores each new
passage with its embedding. Runs as one sequential process: one passage is
embedded and stored at a time, with an optional fixed delay between
embedding calls to stay under provider rate limits.

Re-ingesting unchanged content is a no-op: known fingerprints are skipped
before embedding, and the store's unique constraint catches the rest.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from ..config import settings
from ..db.vector_store import VectorStore
from ..embeddings.embedder import EmbeddingProvider
from ..embeddings.models import Passage
from .chunker import chunk_section, extract_sections

logger = logging.getLogger("aoi.ingest")

INCLUDE_EXTENSIONS = frozenset({".md", ".mdx"})
SKIP_DIRECTORIES = frozenset({"node_modules"})


@dataclass
class IngestReport:
    """Counters for one ingestion run."""
    files: int = 0
    failed_files: int = 0
    chunks: int = 0
    inserted: int = 0
    skipped: int = 0

    def merge(self, other: "IngestReport") -> None:
        self.files += other.files
        self.failed_files += other.failed_files
        self.chunks += other.chunks
        self.inserted += other.inserted
        self.skipped += other.skipped


def iter_doc_files(root: Union[str, Path]) -> Iterator[Path]:
    """Yield markdown files under root, skipping dot entries and node_modules."""
    for entry in sorted(Path(root).iterdir()):
        if entry.name.startswith(".") or entry.name in SKIP_DIRECTORIES:
            continue
        if entry.is_dir():
            yield from iter_doc_files(entry)
        elif entry.suffix.lower() in INCLUDE_EXTENSIONS:
            yield entry


async def ingest_text(
    source_path: str,
    text: str,
    store: VectorStore,
    embedder: EmbeddingProvider,
    sleep_ms: Optional[int] = None,
) -> IngestReport:
    """
    Chunk one document and store the passages that are not stored yet.

    Each inserted passage is committed on its own, so an interrupted run
    keeps everything stored before the interruption.
    """
    delay = (settings.ingest_sleep_ms if sleep_ms is None else sleep_ms) / 1000
    report = IngestReport(files=1)

    for section in extract_sections(text):
        for chunk in chunk_section(section.content):
            report.chunks += 1

            if await store.has_fingerprint(chunk.fingerprint):
                report.skipped += 1
                continue

            embedding = await embedder.embed(chunk.content)
            inserted = await store.upsert(
                Passage(
                    source_path=source_path,
                    section_title=section.title,
                    content=chunk.content,
                    embedding=embedding,
                    fingerprint=chunk.fingerprint,
                )
            )
            await store.commit()

            if inserted:
                report.inserted += 1
            else:
                report.skipped += 1

            if delay > 0:
                await asyncio.sleep(delay)

    return report


async def ingest_file(
    path: Union[str, Path],
    store: VectorStore,
    embedder: EmbeddingProvider,
    sleep_ms: Optional[int] = None,
) -> IngestReport:
    file_path = Path(path)
    text = file_path.read_text(encoding="utf-8")
    return await ingest_text(file_path.as_posix(), text, store, embedder, sleep_ms=sleep_ms)


async def ingest_directory(
    root: Union[str, Path],
    store: VectorStore,
    embedder: EmbeddingProvider,
    sleep_ms: Optional[int] = None,
) -> IngestReport:
    """
    Ingest every markdown file under root.

    A failing file is logged and counted; ingestion continues with the next
    one.
    """
    total = IngestReport()

    for file_path in iter_doc_files(root):
        try:
            report = await ingest_file(file_path.resolve(), store, embedder, sleep_ms=sleep_ms)
        except Exception as exc:
            logger.error("Failed: %s (%s: %s)", file_path, type(exc).__name__, exc)
            await store.rollback()
            total.failed_files += 1
            continue

        total.merge(report)
        logger.info(
            "Ingested: %s (%d new, %d unchanged)",
            file_path,
            report.inserted,
            report.skipped,
        )

    return total

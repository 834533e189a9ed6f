"""
Ingestion entry point.

    python -m aoi_docs_server.ingestion [DOCS_PATH]

DOCS_PATH defaults to settings.docs_path. Exits with status 1 when the path
does not exist.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config import settings
from ..db.session import AsyncSessionLocal, init_db
from ..db.vector_store import VectorStore
from ..embeddings.embedder import Embedder
from .pipeline import ingest_directory

logger = logging.getLogger("aoi.ingest")


async def run(docs_path: Path, sleep_ms: Optional[int] = None) -> int:
    if not docs_path.exists():
        logger.error("Docs path not found: %s", docs_path)
        return 1

    logger.info("Starting ingestion of %s", docs_path)
    await init_db()

    embedder = Embedder()
    async with AsyncSessionLocal() as session:
        report = await ingest_directory(docs_path, VectorStore(session), embedder, sleep_ms=sleep_ms)

    logger.info(
        "Ingestion complete: %d files (%d failed), %d chunks, %d new, %d unchanged",
        report.files,
        report.failed_files,
        report.chunks,
        report.inserted,
        report.skipped,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest aoi.js markdown documentation.")
    parser.add_argument("docs_path", nargs="?", default=settings.docs_path)
    parser.add_argument("--sleep-ms", type=int, default=None, help="Delay between embedding calls.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    return asyncio.run(run(Path(args.docs_path).resolve(), sleep_ms=args.sleep_ms))


if __name__ == "__main__":
    sys.exit(main())

"""
Ingestion Package

Chunking of markdown documentation and the write path into the vector store.
"""

from .chunker import Chunk, Section, chunk_section, extract_sections, fingerprint
from .pipeline import IngestReport, ingest_directory, ingest_file, ingest_text, iter_doc_files

__all__ = [
    "Chunk",
    "Section",
    "chunk_section",
    "extract_sections",
    "fingerprint",
    "IngestReport",
    "ingest_directory",
    "ingest_file",
    "ingest_text",
    "iter_doc_files",
]

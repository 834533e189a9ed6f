"""
Markdown Chunker

Turns raw documentation text into title-scoped sections and each section into
content-bounded passages ready for embedding.

Sizing
------
Passages target 300-700 "tokens" at roughly 5 characters per token, which
gives MIN_CHARS = 1500 and MAX_CHARS = 3500. Paragraphs are accumulated
greedily up to MAX_CHARS; a paragraph that alone exceeds MAX_CHARS is sliced
into fixed-size pieces. A flush that would leave a fragment shorter than
MIN_CHARS is merged into the previous passage when the merged text still fits
within MAX_CHARS.

Everything here is pure and deterministic: no I/O, and any string is accepted.
"""

from __future__ import annotations

import hashlib
import re
from typing import List, NamedTuple


MIN_TOKENS = 300
MAX_TOKENS = 700
CHARS_PER_TOKEN = 5

MIN_CHARS = MIN_TOKENS * CHARS_PER_TOKEN
MAX_CHARS = MAX_TOKENS * CHARS_PER_TOKEN

UNTITLED = "Untitled"

HEADING_PATTERN = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)\s*$")
PARAGRAPH_BREAK = re.compile(r"\n{2,}")
LINE_BREAK = re.compile(r"\r?\n")

PARAGRAPH_JOINER = "\n\n"


class Section(NamedTuple):
    """A heading-scoped slice of a document."""
    title: str
    content: str


class Chunk(NamedTuple):
    """A bounded passage of section text plus its content fingerprint."""
    content: str
    fingerprint: str


def fingerprint(text: str) -> str:
    """Return the SHA-256 hex digest of the exact UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------
# Section Extraction
# ---------------------------------------------------------------------

def extract_sections(text: str) -> List[Section]:
    """
    Split a markdown document into sections at each heading line.

    The heading line itself opens the new section's buffer, so every
    section's content starts with its own heading (except the leading
    "Untitled" section). Sections whose content trims to empty are dropped.
    """
    sections: List[Section] = []
    current_title = UNTITLED
    buffer: List[str] = []

    def flush() -> None:
        content = "\n".join(buffer).strip()
        if content:
            sections.append(Section(title=current_title, content=content))
        buffer.clear()

    for line in LINE_BREAK.split(text):
        match = HEADING_PATTERN.match(line)
        if match:
            flush()
            current_title = match.group(1).strip()
        buffer.append(line)

    flush()
    return sections


# ---------------------------------------------------------------------
# Passage Extraction
# ---------------------------------------------------------------------

def _hard_split(paragraph: str, size: int) -> List[str]:
    return [paragraph[start : start + size] for start in range(0, len(paragraph), size)]


def chunk_section(
    section_text: str,
    min_chars: int = MIN_CHARS,
    max_chars: int = MAX_CHARS,
) -> List[Chunk]:
    """
    Split one section into passages and fingerprint each of them.

    Parameters
    ----------
    section_text : str
        Section content as produced by :func:`extract_sections`.

    min_chars : int
        Passages shorter than this are merged into their predecessor when
        the merged passage fits within ``max_chars``.

    max_chars : int
        Upper bound for accumulated passages. Only slices of a single
        oversized paragraph are produced at exactly this size.

    Returns
    -------
    List[Chunk]
        Passages in document order. Empty input yields an empty list.
    """
    text = section_text.strip()
    if not text:
        return []

    passages: List[str] = []
    buffer = ""

    def flush() -> None:
        candidate = buffer.strip()
        if not candidate:
            return

        if passages:
            previous = passages[-1]
            merged = previous + PARAGRAPH_JOINER + candidate
            too_small = len(candidate) < min_chars or len(previous) < min_chars
            if too_small and len(merged) <= max_chars:
                passages[-1] = merged
                return

        passages.append(candidate)

    for raw in PARAGRAPH_BREAK.split(text):
        paragraph = raw.strip()
        if not paragraph:
            continue

        joined = buffer + PARAGRAPH_JOINER + paragraph if buffer else paragraph
        if len(joined) <= max_chars:
            buffer = joined
            continue

        flush()
        if len(paragraph) <= max_chars:
            buffer = paragraph
        else:
            passages.extend(_hard_split(paragraph, max_chars))
            buffer = ""

    flush()

    return [Chunk(content=p, fingerprint=fingerprint(p)) for p in passages]

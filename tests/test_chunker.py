"""
Chunker Tests

Covers heading-based section extraction and size-bounded passage splitting.
"""

import hashlib

from aoi_docs_server.ingestion.chunker import (
    MAX_CHARS,
    MIN_CHARS,
    UNTITLED,
    Section,
    chunk_section,
    extract_sections,
    fingerprint,
)


class TestExtractSections:
    """Tests for heading-based section extraction."""

    def test_splits_at_headings(self):
        """Verify text splits at each heading line."""
        text = "intro line\n# Alpha\nbody a\n## Beta\nbody b"

        assert extract_sections(text) == [
            Section(title=UNTITLED, content="intro line"),
            Section(title="Alpha", content="# Alpha\nbody a"),
            Section(title="Beta", content="## Beta\nbody b"),
        ]

    def test_empty_sections_are_dropped(self):
        """Verify blank input yields no sections."""
        assert extract_sections("") == []
        assert extract_sections("\n\n   \n") == []

    def test_heading_without_body_keeps_heading_line(self):
        """Verify a heading with no body keeps its heading line."""
        sections = extract_sections("# Only a title")
        assert sections == [Section(title="Only a title", content="# Only a title")]

    def test_indented_heading_up_to_three_spaces(self):
        """Verify headings indented up to three spaces are recognized."""
        sections = extract_sections("   ### Deep\ntext\n    # code, not heading")
        assert [s.title for s in sections] == ["Deep"]

    def test_crlf_line_endings(self):
        """Verify CRLF line endings are handled."""
        sections = extract_sections("# A\r\none\r\n# B\r\ntwo")
        assert [s.title for s in sections] == ["A", "B"]


class TestChunkSection:
    """Tests for size-bounded passage splitting."""

    def test_empty_input_yields_no_passages(self):
        """Verify blank input yields no passages."""
        assert chunk_section("") == []
        assert chunk_section("  \n\n  ") == []

    def test_short_section_is_one_passage(self):
        """Verify a short section becomes one trimmed passage."""
        chunks = chunk_section("  Hello world.\n\nSecond paragraph.  ")

        assert len(chunks) == 1
        assert chunks[0].content == "Hello world.\n\nSecond paragraph."
        assert chunks[0].fingerprint == hashlib.sha256(chunks[0].content.encode("utf-8")).hexdigest()

    def test_paragraphs_are_accumulated_greedily(self):
        """Verify paragraphs accumulate until the next would overflow."""
        paragraphs = [c * 1000 for c in "abcde"]
        chunks = chunk_section("\n\n".join(paragraphs))

        assert [len(c.content) for c in chunks] == [3004, 2002]
        assert chunks[0].content == "\n\n".join(paragraphs[:3])
        assert chunks[1].content == "\n\n".join(paragraphs[3:])

    def test_oversized_paragraph_is_sliced(self):
        """Verify a paragraph longer than MAX_CHARS is sliced."""
        chunks = chunk_section("x" * (MAX_CHARS * 2 + 10))

        assert [len(c.content) for c in chunks] == [MAX_CHARS, MAX_CHARS, 10]

    def test_short_fragment_merges_into_previous_when_it_fits(self):
        """Verify a short tail merges into its predecessor when it fits."""
        text = "x" * (MAX_CHARS + 100) + "\n\n" + "y" * 200
        chunks = chunk_section(text)

        assert [c.content for c in chunks] == [
            "x" * MAX_CHARS,
            "x" * 100 + "\n\n" + "y" * 200,
        ]

    def test_merge_never_exceeds_max(self):
        """Verify no merge produces a passage over MAX_CHARS."""
        text = "a" * 1000 + "\n\n" + "b" * 3000
        chunks = chunk_section(text)

        # Merging would produce 4002 chars, so the short passage stays alone
        assert [len(c.content) for c in chunks] == [1000, 3000]
        assert len(chunks[0].content) < MIN_CHARS

    def test_every_passage_within_bounds(self):
        """Verify every passage is non-empty and within MAX_CHARS."""
        paragraphs = [("word " * n).strip() for n in (40, 900, 15, 300, 1200, 5, 650)]
        chunks = chunk_section("\n\n".join(paragraphs))

        assert chunks
        assert all(0 < len(c.content) <= MAX_CHARS for c in chunks)

    def test_deterministic(self):
        """Verify chunking the same text twice gives the same passages."""
        text = "# Title\n\n" + "\n\n".join("para %d " % i * 50 for i in range(30))

        first = chunk_section(text)
        second = chunk_section(text)

        assert first == second
        assert [c.fingerprint for c in first] == [fingerprint(c.content) for c in first]


def test_fingerprint_is_sha256_of_exact_text():
    """Verify fingerprint is the SHA-256 of the exact text."""
    assert fingerprint("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert fingerprint("abc ") != fingerprint("abc")

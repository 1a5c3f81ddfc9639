"""
Tests for Document Chunking
===========================

Version: 0.1.0
"""

import pytest

from services.compliance_review.pipeline.chunking import (
    ChunkingMode,
    TextChunker,
    chunk_characters,
    chunk_words,
)


class TestChunkWords:
    """Tests for word chunking."""

    def test_round_trip_preserves_words(self) -> None:
        """Test that rejoining chunks gives the whitespace-normalised text."""
        text = "Sterile   single-use\tcatheter\n\nfor  peripheral venous access " * 40

        chunks = chunk_words(text, 7)

        assert " ".join(chunks) == " ".join(text.split())

    def test_chunk_sizes(self) -> None:
        """Test that every chunk but the last holds exactly the word count."""
        words = [f"word{i}" for i in range(23)]
        chunks = chunk_words(" ".join(words), 5)

        assert [len(c.split()) for c in chunks] == [5, 5, 5, 5, 3]

    def test_empty_text(self) -> None:
        """Test that blank text produces no chunks."""
        assert chunk_words("   \n\t ", 500) == []

    def test_invalid_size(self) -> None:
        """Test that a non-positive size is rejected."""
        with pytest.raises(ValueError):
            chunk_words("text", 0)


class TestChunkCharacters:
    """Tests for character chunking."""

    def test_round_trip_without_blank_slices(self) -> None:
        """Test that concatenating slices restores text with no blank regions."""
        text = "Regulation Article 12. Labeling shall state sterility. " * 30

        chunks = chunk_characters(text, 100)

        assert "".join(chunks) == text
        assert all(len(c) <= 100 for c in chunks)

    def test_blank_slices_join_previous_chunk(self) -> None:
        """Test that a whitespace-only slice stays as the separator after the previous chunk."""
        text = "a" * 10 + " " * 10 + "b" * 5

        chunks = chunk_characters(text, 10)

        assert chunks == ["a" * 10 + " " * 10, "b" * 5]
        assert "".join(chunks) == text

    def test_round_trip_across_whitespace_regions(self) -> None:
        """Test that chunks rejoined by single spaces give the normalised text."""
        text = "aaa   bbb\n\n\n\nSterile barrier   integrity shall be verified.\t\t\tccc"

        for size in (10, 12, 16, 25):
            chunks = chunk_characters(text, size)

            assert " ".join(" ".join(chunks).split()) == " ".join(text.split())
            assert "".join(chunks) == text
            assert all(c.strip() for c in chunks)

    def test_cuts_at_whitespace(self) -> None:
        """Test that slices end at a word boundary when one is inside the slice."""
        chunks = chunk_characters("sterile single-use catheter", 10)

        assert chunks == ["sterile ", "single-use", " catheter"]

    def test_long_word_cut_hard(self) -> None:
        """Test that a word longer than the slice is cut at the slice width."""
        assert chunk_characters("x" * 25, 10) == ["x" * 10, "x" * 10, "x" * 5]

    def test_leading_whitespace(self) -> None:
        """Test that leading blank slices produce no chunk."""
        assert chunk_characters(" " * 12 + "label", 10) == ["  label"]


class TestTextChunker:
    """Tests for the TextChunker facade."""

    def test_indexes_are_contiguous(self) -> None:
        """Test that chunk indexes start at 0 with no gaps."""
        chunker = TextChunker(ChunkingMode.CHARACTERS, 10)
        chunks = chunker.chunk("x" * 10 + " " * 10 + "y" * 10)

        assert [c.index for c in chunks] == [0, 1]
        assert all(c.content.strip() for c in chunks)

    def test_word_mode(self) -> None:
        """Test word mode counts."""
        chunker = TextChunker(ChunkingMode.WORDS, 2)
        chunks = chunker.chunk("one two three")

        assert [c.content for c in chunks] == ["one two", "three"]
        assert chunks[0].word_count == 2

    def test_deterministic(self) -> None:
        """Test that chunking the same text twice yields equal chunks."""
        chunker = TextChunker(ChunkingMode.WORDS, 3)
        text = "Instructions for use: open the pouch and inspect the device"

        assert chunker.chunk(text) == chunker.chunk(text)

    def test_invalid_unit_size(self) -> None:
        """Test that a non-positive unit size is rejected."""
        with pytest.raises(ValueError):
            TextChunker(ChunkingMode.WORDS, 0)

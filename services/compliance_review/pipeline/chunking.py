"""
Document Chunking Module
========================

Splits extracted text into bounded segments for storage and retrieval.

Modes:
- Words: fixed-size groups of whitespace-delimited words (submissions)
- Characters: bounded character slices cut at whitespace (regulations)

Version: 0.1.0
"""

from dataclasses import dataclass
from enum import Enum

from shared.logging import get_logger

logger = get_logger(__name__)


class ChunkingMode(str, Enum):
    """Available chunking modes."""

    WORDS = "words"
    CHARACTERS = "characters"


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a document's text."""

    index: int
    content: str

    @property
    def char_count(self) -> int:
        """Character count of the chunk."""
        return len(self.content)

    @property
    def word_count(self) -> int:
        """Word count of the chunk."""
        return len(self.content.split())


def chunk_words(text: str, words_per_chunk: int = 500) -> list[str]:
    """
    Group whitespace-delimited words into chunks joined by single spaces.

    Args:
        text: Text to split
        words_per_chunk: Words per chunk

    Returns:
        Chunk texts in document order
    """
    if words_per_chunk < 1:
        raise ValueError("words_per_chunk must be positive")

    words = text.split()
    return [
        " ".join(words[i : i + words_per_chunk])
        for i in range(0, len(words), words_per_chunk)
    ]


def chunk_characters(text: str, chars_per_chunk: int = 1000) -> list[str]:
    """
    Slice text into runs of at most ``chars_per_chunk`` characters.

    A cut that would split a word moves back to the nearest whitespace
    inside the slice. Words longer than a whole slice are cut hard.
    Whitespace-only slices are appended to the previous chunk (or
    dropped when no chunk precedes them), so concatenating the chunks
    restores every character after the first non-blank slice.

    Args:
        text: Text to split
        chars_per_chunk: Characters per slice

    Returns:
        Chunk texts in document order
    """
    if chars_per_chunk < 1:
        raise ValueError("chars_per_chunk must be positive")

    pieces: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chars_per_chunk, len(text))
        if end < len(text) and not text[end].isspace():
            cut = end
            while cut > start and not text[cut - 1].isspace():
                cut -= 1
            if cut > start:
                end = cut

        piece = text[start:end]
        if piece.strip():
            pieces.append(piece)
        elif pieces:
            pieces[-1] += piece
        start = end

    return pieces


class TextChunker:
    """
    Deterministic, stateless document chunker.

    Indexes are 0-based and contiguous over the kept chunks.
    """

    def __init__(self, mode: ChunkingMode = ChunkingMode.WORDS, unit_size: int = 500) -> None:
        """
        Initialize the chunker.

        Args:
            mode: Word or character chunking
            unit_size: Words (or characters) per chunk
        """
        if unit_size < 1:
            raise ValueError("unit_size must be positive")
        self.mode = mode
        self.unit_size = unit_size

    def chunk(self, text: str) -> list[Chunk]:
        """
        Chunk text.

        Args:
            text: Extracted document text

        Returns:
            List of Chunk objects
        """
        if self.mode == ChunkingMode.WORDS:
            pieces = chunk_words(text, self.unit_size)
        else:
            pieces = chunk_characters(text, self.unit_size)

        chunks = [Chunk(index=i, content=piece) for i, piece in enumerate(pieces)]

        logger.debug(
            "document_chunked",
            mode=self.mode.value,
            unit_size=self.unit_size,
            chunks=len(chunks),
        )
        return chunks

"""
Character-based text chunking for entity documents.
"""

from typing import List, Sequence

from models.schema import Entity

DEFAULT_SEPARATORS = ("\n\n", "\n", " ")


class TextChunker:
    """Splits text into overlapping windows of at most ``chunk_size`` characters.

    Each cut prefers the last paragraph break, then line break, then space
    found in the second half of the window; without one the window is cut
    hard. The next window starts exactly ``chunk_overlap`` characters before
    the previous cut, so the original text is recovered by dropping the
    first ``chunk_overlap`` characters of every chunk but the first.
    """

    def __init__(
        self,
        chunk_size: int = 500,
        chunk_overlap: int = 100,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap must not be negative")
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = tuple(separators)
        # A cut never lands closer to the window start than this, which keeps
        # every chunk longer than the overlap
        self._min_cut = max(chunk_size // 2, chunk_overlap + 1)

    def split(self, text: str) -> List[str]:
        if not text or not text.strip():
            return []
        if len(text) <= self.chunk_size:
            return [text]

        chunks: List[str] = []
        start = 0
        while True:
            end = start + self.chunk_size
            if end >= len(text):
                chunks.append(text[start:])
                break

            end = self._find_cut(text, start, end)
            chunks.append(text[start:end])
            start = max(end - self.chunk_overlap, start + 1)
        return chunks

    def _find_cut(self, text: str, start: int, end: int) -> int:
        lowest = start + self._min_cut
        for separator in self.separators:
            index = text.rfind(separator, lowest, end)
            if index != -1:
                return index + len(separator)
        return end

    @staticmethod
    def join(chunks: Sequence[str], chunk_overlap: int) -> str:
        """Rebuild the source text from chunks produced with ``chunk_overlap``."""
        if not chunks:
            return ""
        return chunks[0] + "".join(chunk[chunk_overlap:] for chunk in chunks[1:])


def entity_to_text(entity: Entity) -> str:
    """Searchable document for an entity: type, title, description and tags."""
    description = entity.data.description
    tags = ", ".join(entity.data.tags)
    return f"{entity.type.value}: {entity.title}. {description} {tags}".strip()

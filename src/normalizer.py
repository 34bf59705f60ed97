"""
normalizer.py - Text Normalisation and Chunking

Turns free-form text into overlapping word chunks for similarity scoring.
This module is deliberately independent of the watermark codec: invisible
characters are neither letters, digits nor whitespace, so normalisation
deletes them and an embedded marker never changes a similarity score.

    "The quick, brown fox!"  ->  "the quick brown fox"
    chunks(k=2)              ->  {"the quick", "quick brown", "brown fox"}
"""

import logging
import re
from typing import FrozenSet, Iterable, Iterator, List, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5

_WHITESPACE_RUN = re.compile(r"\s+")


class ChunkSet:
    """
    Immutable set of chunks that remembers first-occurrence order.

    Membership and size follow set semantics; iteration follows the order
    in which chunks first appeared in the document, which keeps evidence
    ordering reproducible across runs.
    """

    __slots__ = ("_ordered", "_members")

    def __init__(self, chunks: Iterable[str] = ()):
        ordered = tuple(dict.fromkeys(chunks))
        object.__setattr__(self, "_ordered", ordered)
        object.__setattr__(self, "_members", frozenset(ordered))

    def __setattr__(self, name, value):
        raise AttributeError("ChunkSet is immutable")

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ordered)

    def __contains__(self, chunk: object) -> bool:
        return chunk in self._members

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ChunkSet):
            return self._members == other._members
        if isinstance(other, (set, frozenset)):
            return self._members == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._members)

    def __repr__(self) -> str:
        return f"ChunkSet({list(self._ordered)!r})"

    @property
    def members(self) -> FrozenSet[str]:
        return self._members

    def intersection(self, other: "ChunkSet") -> List[str]:
        """Shared chunks, in this set's iteration order."""
        return [chunk for chunk in self._ordered if chunk in other]

    def union_size(self, other: "ChunkSet") -> int:
        return len(self._members | other.members)


class TextNormalizer:
    """
    Canonicalises text into a comparable token stream.

    Example:
        >>> normalizer = TextNormalizer()
        >>> normalizer.normalize("  Hello,   World! ")
        'hello world'
        >>> len(normalizer.chunks("a b c", 5))
        0
    """

    def normalize(self, text: str) -> str:
        """Lower-case, drop everything but letters/digits/whitespace, collapse spaces."""
        lowered = text.lower()
        kept = "".join(ch for ch in lowered if ch.isalpha() or ch.isdecimal() or ch.isspace())
        return _WHITESPACE_RUN.sub(" ", kept).strip()

    def tokenize(self, text: str) -> List[str]:
        normalized = self.normalize(text)
        if not normalized:
            return []
        return normalized.split(" ")

    def chunks(self, text: str, k: int = DEFAULT_CHUNK_SIZE) -> ChunkSet:
        """
        Slide a window of k tokens over text and collect the distinct chunks.

        Raises:
            ValueError: If k is not a positive integer.
        """
        if isinstance(k, bool) or not isinstance(k, int) or k < 1:
            raise ValueError(f"Chunk size must be a positive integer, got {k!r}")

        tokens = self.tokenize(text)
        windows: Tuple[str, ...] = tuple(
            " ".join(tokens[i : i + k]) for i in range(len(tokens) - k + 1)
        )
        return ChunkSet(windows)


_default_normalizer = TextNormalizer()


def normalize(text: str) -> str:
    return _default_normalizer.normalize(text)


def chunks(text: str, k: int = DEFAULT_CHUNK_SIZE) -> ChunkSet:
    return _default_normalizer.chunks(text, k)

"""
similarity.py - Chunk-Overlap Similarity Scoring

Ranks reference documents by how many k-word chunks they share with a
query document.

Scoring Model:
    similarity(query, ref) = |C(query) ∩ C(ref)| / |C(query) ∪ C(ref)|

    where C(doc) is the ChunkSet of doc. Two documents without any chunk
    (both shorter than k tokens) score 0.0: no comparable content means no
    similarity, not an error.

Determinism:
    Results are sorted by descending score with a stable sort, so ties keep
    the caller's reference order. Evidence chunks follow the query's chunk
    order. Identical inputs always give identical output, whether the
    comparisons ran sequentially or on a thread pool.

Example:
    >>> scorer = SimilarityScorer()
    >>> results = scorer.score(
    ...     "the quick brown fox jumps",
    ...     [("d1", "the quick brown fox jumps"), ("d2", "totally unrelated text here now")],
    ... )
    >>> [(r.reference_id, r.score) for r in results]
    [('d1', 1.0), ('d2', 0.0)]
"""

import hashlib
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple, Union

try:
    from .normalizer import DEFAULT_CHUNK_SIZE, ChunkSet, TextNormalizer
except ImportError:
    from normalizer import DEFAULT_CHUNK_SIZE, ChunkSet, TextNormalizer

logger = logging.getLogger(__name__)

DEFAULT_EVIDENCE_LIMIT = 5
DEFAULT_THRESHOLD = 0.1


def jaccard(a: ChunkSet, b: ChunkSet) -> float:
    """Jaccard index of two chunk sets; 0.0 when both are empty."""
    union = a.union_size(b)
    if union == 0:
        return 0.0
    return len(a.members & b.members) / union


# ═══════════════════════════════════════════════════════════════════════════════
# DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Reference:
    """A document to compare against."""

    id: str
    text: str
    name: Optional[str] = None


@dataclass(frozen=True)
class MatchResult:
    """
    Similarity of the query to one reference document.

    Attributes:
        reference_id: Identifier of the reference document
        score: Jaccard similarity in [0, 1]
        evidence: Up to evidence_limit shared chunks, in query order
        name: Optional display name of the reference
    """

    reference_id: str
    score: float
    evidence: Tuple[str, ...] = ()
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "reference_id": self.reference_id,
            "name": self.name,
            "score": self.score,
            "evidence": list(self.evidence),
        }


@dataclass
class SimilarityReport:
    """
    Outcome of checking one query document against a corpus.

    Attributes:
        query_sha256: SHA-256 of the query text
        chunk_size: k used for chunking
        threshold: Scores strictly above this are flagged
        query_chunks: Number of distinct chunks in the query
        results: Every reference, ranked
        scan_timestamp: When the check ran
    """

    query_sha256: str
    chunk_size: int
    threshold: float
    query_chunks: int
    results: List[MatchResult] = field(default_factory=list)
    scan_timestamp: str = ""

    @property
    def flagged(self) -> List[MatchResult]:
        return [r for r in self.results if r.score > self.threshold]

    @property
    def best_match(self) -> Optional[MatchResult]:
        flagged = self.flagged
        return flagged[0] if flagged else None

    def summary(self) -> str:
        """Human-readable ranking of flagged references."""
        lines = [
            "═══════════════════════════════════════════════════════════",
            "  Similarity Report",
            "═══════════════════════════════════════════════════════════",
            f"  ○ Query chunks:      {self.query_chunks} (k={self.chunk_size})",
            f"  ○ References:        {len(self.results)}",
            f"  ○ Threshold:         > {self.threshold:.2f}",
        ]

        flagged = self.flagged
        if not flagged:
            lines.append("  ✓ No reference above threshold")
        else:
            lines.append(f"  ⚠ Flagged references: {len(flagged)}")
            for result in flagged[:10]:
                label = result.name or result.reference_id
                lines.append(f"\n    • {label}: {result.score:.1%}")
                for chunk in result.evidence:
                    lines.append(f'        "{chunk}"')

        lines.append("═══════════════════════════════════════════════════════════")
        return "\n".join(lines)

    def to_json(self) -> str:
        best = self.best_match
        return json.dumps(
            {
                "query_sha256": self.query_sha256,
                "chunk_size": self.chunk_size,
                "threshold": self.threshold,
                "query_chunks": self.query_chunks,
                "scan_timestamp": self.scan_timestamp,
                "best_match": best.to_dict() if best is not None else None,
                "flagged": [r.to_dict() for r in self.flagged],
                "results": [r.to_dict() for r in self.results],
            },
            indent=2,
            ensure_ascii=False,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN SCORER CLASS
# ═══════════════════════════════════════════════════════════════════════════════

ReferenceLike = Union[Reference, Tuple[str, str]]


def _as_reference(item: ReferenceLike) -> Reference:
    if isinstance(item, Reference):
        return item
    ref_id, text = item
    return Reference(id=ref_id, text=text)


class SimilarityScorer:
    """
    Ranks references by chunk overlap with a query.

    Args:
        chunk_size: Words per chunk (k).
        evidence_limit: Maximum shared chunks kept per result.
        max_workers: Compare references on a thread pool when > 1.
        timeout: Whole-call deadline in seconds, on both the sequential and
            the pooled path. On expiry the call raises
            concurrent.futures.TimeoutError; it never returns a partial
            ranking.

    Thread Safety:
        Instances hold only configuration and can be shared.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        evidence_limit: int = DEFAULT_EVIDENCE_LIMIT,
        max_workers: int = 1,
        timeout: Optional[float] = None,
        normalizer: TextNormalizer = None,
    ):
        if evidence_limit < 0:
            raise ValueError("evidence_limit cannot be negative")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self._normalizer = normalizer or TextNormalizer()
        # Validates chunk_size up front
        self._normalizer.chunks("", chunk_size)

        self.chunk_size = chunk_size
        self.evidence_limit = evidence_limit
        self.max_workers = max_workers
        self.timeout = timeout

    # ─────────────────────────────────────────────────────────────────────────
    # PUBLIC API
    # ─────────────────────────────────────────────────────────────────────────

    def chunks(self, text: str) -> ChunkSet:
        return self._normalizer.chunks(text, self.chunk_size)

    def score(self, query: str, references: Iterable[ReferenceLike]) -> List[MatchResult]:
        """
        Compare query against every reference and rank the results.

        Args:
            query: The submitted document text.
            references: (id, text) pairs or Reference objects, in caller order.

        Returns:
            One MatchResult per reference, highest score first.
        """
        return self._rank(self.chunks(query), references)

    def check(
        self,
        query: str,
        references: Iterable[ReferenceLike],
        threshold: float = DEFAULT_THRESHOLD,
    ) -> SimilarityReport:
        """Score query and wrap the ranking in a SimilarityReport."""
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be within [0, 1], got {threshold}")

        query_chunks = self.chunks(query)
        return SimilarityReport(
            query_sha256=hashlib.sha256(query.encode("utf-8")).hexdigest(),
            chunk_size=self.chunk_size,
            threshold=threshold,
            query_chunks=len(query_chunks),
            results=self._rank(query_chunks, references),
            scan_timestamp=datetime.now().isoformat(),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # INTERNAL
    # ─────────────────────────────────────────────────────────────────────────

    def _rank(self, query_chunks: ChunkSet, references: Iterable[ReferenceLike]) -> List[MatchResult]:
        refs = [_as_reference(item) for item in references]

        if self.max_workers > 1 and len(refs) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(
                    executor.map(lambda ref: self._compare(query_chunks, ref), refs, timeout=self.timeout)
                )
        else:
            deadline = None if self.timeout is None else time.monotonic() + self.timeout
            results = []
            for ref in refs:
                results.append(self._compare(query_chunks, ref))
                # Checked between comparisons; a running one is not interrupted
                if deadline is not None and time.monotonic() > deadline:
                    raise FuturesTimeoutError(
                        f"Scoring exceeded {self.timeout}s after {len(results)} of {len(refs)} references"
                    )

        logger.debug("Scored %d references against %d query chunks", len(refs), len(query_chunks))
        # sorted() is stable, reverse=True keeps ties in reference order
        return sorted(results, key=lambda r: r.score, reverse=True)

    def _compare(self, query_chunks: ChunkSet, ref: Reference) -> MatchResult:
        ref_chunks = self.chunks(ref.text)
        shared = query_chunks.intersection(ref_chunks)
        return MatchResult(
            reference_id=ref.id,
            score=jaccard(query_chunks, ref_chunks),
            evidence=tuple(shared[: self.evidence_limit]),
            name=ref.name,
        )


def score(
    query: str,
    references: Sequence[ReferenceLike],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> List[MatchResult]:
    return SimilarityScorer(chunk_size=chunk_size).score(query, references)

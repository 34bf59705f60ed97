"""
text_injector.py - Paragraph-Aware Marker Injection

This module places an encoded marker into a plain-text document. It knows
how documents are split into paragraphs and inserts one copy of the
invisible run at every paragraph boundary.

Paragraph Rule:
    A boundary is one or more blank lines, where a blank line contains only
    whitespace. The boundary text itself is kept verbatim, so removing the
    invisible characters gives back the original document exactly.

Injection Strategy:
    paragraph_1 + boundary_1 + RUN + paragraph_2 + boundary_2 + RUN + ... + paragraph_n

    A document without any boundary gets a single copy appended at the end.
    Repeating the run per paragraph is redundancy: any surviving copy is
    enough to recover the marker after a partial copy-paste.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Tuple

try:
    from .stegano_core import SteganoEngine, ZeroWidthCodec
except ImportError:
    from stegano_core import SteganoEngine, ZeroWidthCodec

logger = logging.getLogger(__name__)

PARAGRAPH_BOUNDARY = re.compile(r"(\n\s*\n)")


def split_paragraphs(text: str) -> Tuple[List[str], List[str]]:
    """
    Split text into paragraphs and the boundaries between them.

    Returns:
        (paragraphs, boundaries) where len(boundaries) == len(paragraphs) - 1
        and interleaving them reproduces the input.
    """
    parts = PARAGRAPH_BOUNDARY.split(text)
    return parts[0::2], parts[1::2]


# ═══════════════════════════════════════════════════════════════════════════════
# DATA TYPES
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class InjectionPoint:
    """
    Records a single location where the invisible run was inserted.

    Attributes:
        paragraph_index: Index of the paragraph the run follows
        offset: Character offset of the run in the watermarked text
        length: Number of invisible characters inserted
    """

    paragraph_index: int
    offset: int
    length: int


@dataclass
class InjectionReport:
    """
    Report of a marker injection.

    Attributes:
        marker: The marker that was embedded
        watermarked_text: The resulting document
        paragraph_count: Number of paragraphs found in the host text
        bit_length: Number of bits in the encoded marker
        checksum: Truncated SHA-256 of the marker
        injection_points: Every insertion, in document order
        warnings: Non-fatal issues noticed during injection
    """

    marker: str
    watermarked_text: str
    paragraph_count: int
    bit_length: int
    checksum: str
    injection_points: List[InjectionPoint] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def total_injections(self) -> int:
        return len(self.injection_points)

    def summary(self) -> str:
        """Human-readable summary of the injection operation."""
        lines = [
            "═══════════════════════════════════════════════════════════",
            f"  Injection Report: '{self.marker}'",
            "═══════════════════════════════════════════════════════════",
            f"  ✓ Copies embedded:   {self.total_injections}",
            f"  ○ Paragraphs found:  {self.paragraph_count}",
            f"  ○ Encoded bits:      {self.bit_length}",
            f"  ○ Marker checksum:   {self.checksum}",
        ]

        if self.warnings:
            lines.append(f"  ⚠ Warnings: {len(self.warnings)}")
            for w in self.warnings[:3]:
                lines.append(f"    - {w}")

        if self.injection_points:
            lines.append("\n  Injection Locations:")
            for point in self.injection_points[:10]:
                lines.append(
                    f"    • after paragraph {point.paragraph_index + 1} "
                    f"(offset {point.offset}, {point.length} chars)"
                )

        lines.append("═══════════════════════════════════════════════════════════")
        return "\n".join(lines)


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN INJECTOR CLASS
# ═══════════════════════════════════════════════════════════════════════════════


class TextInjector:
    """
    Embeds a marker into a plain-text document.

    Example:
        >>> injector = TextInjector()
        >>> report = injector.inject("Hello world.\\n\\nGoodbye.", "AB")
        >>> report.total_injections
        1
        >>> SteganoEngine().strip(report.watermarked_text)
        'Hello world.\\n\\nGoodbye.'
    """

    def __init__(self, engine: SteganoEngine = None):
        self._engine = engine or SteganoEngine()

    def inject(self, host: str, marker: str) -> InjectionReport:
        """
        Embed a marker after every paragraph boundary of host.

        Args:
            host: The document text. It is never modified in place.
            marker: The text to hide (code points <= 255).

        Returns:
            InjectionReport carrying the watermarked text.

        Raises:
            WatermarkError: If marker is empty.
            UnsupportedMarkerCharacter: If marker cannot be encoded.
        """
        encoded = self._engine.encode(marker)
        run = encoded.invisible_run

        paragraphs, boundaries = split_paragraphs(host)
        report = InjectionReport(
            marker=marker,
            watermarked_text="",
            paragraph_count=len(paragraphs),
            bit_length=encoded.bit_length,
            checksum=encoded.checksum,
        )

        if ZeroWidthCodec.contains_markers(host):
            report.warnings.append(
                "Host text already contains invisible characters; extraction returns the first run"
            )

        pieces: List[str] = []
        offset = 0
        for index, paragraph in enumerate(paragraphs):
            pieces.append(paragraph)
            offset += len(paragraph)
            if index < len(boundaries):
                pieces.append(boundaries[index])
                offset += len(boundaries[index])
                report.injection_points.append(InjectionPoint(index, offset, len(run)))
                pieces.append(run)
                offset += len(run)

        if len(paragraphs) == 1:
            report.injection_points.append(InjectionPoint(0, offset, len(run)))
            pieces.append(run)

        report.watermarked_text = "".join(pieces)

        logger.debug(
            "Embedded %d copies of a %d-bit marker across %d paragraphs",
            report.total_injections,
            encoded.bit_length,
            len(paragraphs),
        )
        return report

    def embed(self, host: str, marker: str) -> str:
        """Embed a marker and return only the watermarked text."""
        return self.inject(host, marker).watermarked_text

"""
text_tracer.py - Marker Extraction and Forensic Analysis

This module is the reading side of textmark-trace. Given a document that
may have been copied from a watermarked original, it recovers the
embedded marker and, on request, produces a full forensic report.

Extraction Policy:
    extract() decodes only the FIRST invisible run in document order.
    Later copies exist for redundancy and are ignored. A corrupted first
    run yields None even if later copies are intact; trace() reports those
    copies separately so an investigator can still see them.

    Extraction is advisory. Arbitrary text can contain stray zero-width
    characters (emoji joiner sequences, for instance), so decoding
    failures never raise and are reported as "no marker".

Example Investigation:
    >>> tracer = TextTracer()
    >>> report = tracer.trace_file("copied_essay.txt")
    >>> if report.watermarks_found:
    ...     print(f"Marker recovered: {report.marker}")
"""

import hashlib
import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

try:
    from .registry import MarkerRegistry, RegistryEntry
    from .stegano_core import SteganoEngine
except ImportError:
    from registry import MarkerRegistry, RegistryEntry
    from stegano_core import SteganoEngine

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# DATA CLASSES FOR FORENSIC REPORTS
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class RunFinding:
    """
    One invisible run found in the document.

    Attributes:
        index: Position of the run among all runs (0 = first)
        offset: Character offset where the run starts
        line: 1-based line number of the run
        length: Number of invisible characters in the run
        marker: Decoded marker, None if the run did not decode
        error: Decoding error message for corrupted runs
        visible_context: Visible text just before the run
    """

    index: int
    offset: int
    line: int
    length: int
    marker: Optional[str] = None
    error: Optional[str] = None
    visible_context: str = ""

    @property
    def is_valid(self) -> bool:
        return self.marker is not None


@dataclass
class TraceReport:
    """
    Forensic analysis of a single document.

    Attributes:
        source: File path or "<in-memory>"
        sha256: SHA-256 of the text as received
        visible_sha256: SHA-256 of the text with invisible characters removed
        scan_timestamp: When the scan was performed
        marker: First-match marker (what extract() returns)
        findings: Every invisible run in document order
        consensus: Most frequent decoded marker across all runs (advisory)
        registry_entry: Registry record matching the marker, if a registry was given
        verdict: Human-readable summary of findings
    """

    source: str
    sha256: str
    visible_sha256: str
    scan_timestamp: str
    marker: Optional[str] = None
    findings: List[RunFinding] = field(default_factory=list)
    consensus: Optional[str] = None
    registry_checked: bool = False
    registry_entry: Optional[RegistryEntry] = None
    verdict: str = ""

    @property
    def watermarks_found(self) -> bool:
        return self.marker is not None

    @property
    def total_runs(self) -> int:
        return len(self.findings)

    @property
    def valid_runs(self) -> int:
        return sum(1 for f in self.findings if f.is_valid)

    @property
    def markers(self) -> List[str]:
        """Distinct decoded markers in order of first appearance."""
        seen: List[str] = []
        for finding in self.findings:
            if finding.is_valid and finding.marker not in seen:
                seen.append(finding.marker)
        return seen

    def forensic_summary(self) -> str:
        """Generate a formal report block for documentation."""
        lines = [
            "╔══════════════════════════════════════════════════════════════════╗",
            "║            DOCUMENT MARKER ANALYSIS REPORT                       ║",
            "╠══════════════════════════════════════════════════════════════════╣",
            f"║  Source:    {self.source[:52]:<52} ║",
            f"║  SHA-256:   {self.sha256[:52]:<52} ║",
            f"║  Visible:   {self.visible_sha256[:52]:<52} ║",
            f"║  Scan Time: {self.scan_timestamp[:52]:<52} ║",
            "╠══════════════════════════════════════════════════════════════════╣",
        ]

        if self.watermarks_found:
            lines.append("║  ⚠️  MARKER DETECTED                                              ║")
            lines.append("╠══════════════════════════════════════════════════════════════════╣")
            lines.append(f"║  Marker: {self.marker[:55]:<55} ║")
            lines.append(f"║  Invisible runs: {self.total_runs:<8} decodable: {self.valid_runs:<24} ║")
            if self.registry_checked:
                if self.registry_entry is not None:
                    issued = f"{self.registry_entry.filename} ({self.registry_entry.watermark_id})"
                    lines.append(f"║  Registered: {issued[:51]:<51} ║")
                else:
                    lines.append("║  Registered: NO (marker unknown to the registry)                 ║")
        elif self.findings:
            lines.append("║  ⚠ INVISIBLE CHARACTERS PRESENT, NO MARKER RECOVERED              ║")
            lines.append("╠══════════════════════════════════════════════════════════════════╣")
            lines.append(f"║  Invisible runs: {self.total_runs:<8} decodable: {self.valid_runs:<24} ║")
            if self.consensus is not None:
                lines.append(f"║  Intact later copy: {self.consensus[:44]:<44} ║")
        else:
            lines.append("║  ✓ NO MARKER DETECTED                                            ║")
            lines.append("╠══════════════════════════════════════════════════════════════════╣")
            lines.append("║  This document carries no invisible marker. This could mean:     ║")
            lines.append("║    • It was never watermarked                                    ║")
            lines.append("║    • Invisible characters were stripped                          ║")
            lines.append("║    • The text was retyped rather than copied                     ║")

        lines.append("╠══════════════════════════════════════════════════════════════════╣")
        lines.append(f"║  VERDICT: {self.verdict[:54]:<54} ║")
        lines.append("╚══════════════════════════════════════════════════════════════════╝")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "sha256": self.sha256,
            "visible_sha256": self.visible_sha256,
            "scan_timestamp": self.scan_timestamp,
            "watermarks_found": self.watermarks_found,
            "marker": self.marker,
            "consensus": self.consensus,
            "total_runs": self.total_runs,
            "valid_runs": self.valid_runs,
            "registry_checked": self.registry_checked,
            "registry_entry": (
                {
                    "watermark_id": self.registry_entry.watermark_id,
                    "filename": self.registry_entry.filename,
                    "created_at": self.registry_entry.created_at,
                }
                if self.registry_entry is not None
                else None
            ),
            "findings": [
                {
                    "index": f.index,
                    "offset": f.offset,
                    "line": f.line,
                    "length": f.length,
                    "marker": f.marker,
                    "error": f.error,
                    "visible_context": f.visible_context[:100],
                }
                for f in self.findings
            ],
            "verdict": self.verdict,
        }

    def to_json(self) -> str:
        """Export report as JSON for programmatic processing."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN TRACER CLASS
# ═══════════════════════════════════════════════════════════════════════════════


class TextTracer:
    """
    Recovers markers from documents.

    The tracer never modifies its input. Give it a MarkerRegistry to
    cross-check recovered markers against the ones actually issued.
    """

    CONTEXT_CHARS = 50

    def __init__(self, engine: SteganoEngine = None, registry: Optional[MarkerRegistry] = None):
        self._engine = engine or SteganoEngine()
        self._registry = registry

    # ─────────────────────────────────────────────────────────────────────────
    # PUBLIC API
    # ─────────────────────────────────────────────────────────────────────────

    def extract(self, text: str) -> Optional[str]:
        """
        Recover the marker from the first invisible run, or None.

        Never raises for any input text.
        """
        run = self._engine.first_run(text)
        if run is None:
            return None

        result = self._engine.decode(run.content)
        if not result.is_valid:
            logger.debug("First invisible run at offset %d is not a marker: %s", run.start, result.error)
            return None
        return result.marker

    def has_watermark(self, text: str) -> bool:
        """Quick check whether extract() would find a marker."""
        return self.extract(text) is not None

    def trace(self, text: str, source: str = "<in-memory>") -> TraceReport:
        """
        Scan every invisible run in text and build a forensic report.

        The report's marker always equals extract(text).
        """
        report = TraceReport(
            source=source,
            sha256=hashlib.sha256(text.encode("utf-8")).hexdigest(),
            visible_sha256=hashlib.sha256(self._engine.strip(text).encode("utf-8")).hexdigest(),
            scan_timestamp=datetime.now().isoformat(),
        )

        for index, run in enumerate(self._engine.find_runs(text)):
            result = self._engine.decode(run.content)
            context = self._engine.strip(text[max(0, run.start - self.CONTEXT_CHARS * 2) : run.start])
            finding = RunFinding(
                index=index,
                offset=run.start,
                line=text.count("\n", 0, run.start) + 1,
                length=len(run),
                marker=result.marker,
                error=result.error,
                visible_context=context[-self.CONTEXT_CHARS :],
            )
            if not finding.is_valid:
                logger.warning("Invisible run %d at line %d did not decode: %s", index, finding.line, result.error)
            report.findings.append(finding)

        if report.findings and report.findings[0].is_valid:
            report.marker = report.findings[0].marker

        votes = Counter(f.marker for f in report.findings if f.is_valid)
        if votes:
            report.consensus = votes.most_common(1)[0][0]

        if self._registry is not None:
            report.registry_checked = True
            if report.marker is not None:
                report.registry_entry = self._registry.lookup(report.marker)

        report.verdict = self._verdict(report)
        return report

    def trace_file(self, path: Union[str, Path]) -> TraceReport:
        """
        Read a UTF-8 text file and trace it.

        Raises:
            FileNotFoundError: If path does not exist.
            UnicodeDecodeError: If the file is not valid UTF-8.
        """
        with open(path, encoding="utf-8") as f:
            text = f.read()
        return self.trace(text, source=str(path))

    # ─────────────────────────────────────────────────────────────────────────
    # INTERNAL
    # ─────────────────────────────────────────────────────────────────────────

    @staticmethod
    def _verdict(report: TraceReport) -> str:
        if report.watermarks_found:
            if report.registry_checked and report.registry_entry is None:
                return f"Marker '{report.marker}' is not in the registry"
            if report.registry_entry is not None:
                return f"Issued for {report.registry_entry.filename}"
            if len(report.markers) > 1:
                return "Multiple distinct markers - possible merged document"
            return f"Document carries marker '{report.marker}'"

        if report.findings:
            if report.consensus is not None:
                return "First run corrupted; a later copy decodes"
            return "Invisible characters present but no marker decodes"

        return "No invisible marker found"

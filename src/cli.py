#!/usr/bin/env python3
"""
cli.py - Command Line Interface for textmark-trace

Workflows:

    1. EMBED:   Hide an authorship marker in a text document before sharing it
    2. EXTRACT: Recover the marker from a document that may have been copied
    3. TRACE:   Full forensic report of every invisible run in a document
    4. VERIFY:  Quick marker presence check
    5. STRIP:   Remove every invisible character from a document
    6. CHECK:   Rank a corpus of reference documents by similarity

Usage Examples:
    $ python -m textmark_trace embed essay.txt "Author: Jane Doe"
    $ python -m textmark_trace extract copied.txt
    $ python -m textmark_trace trace copied.txt --registry markers.json
    $ python -m textmark_trace check submission.txt corpus/ --threshold 0.2

Exit codes: 0 = ok / nothing found, 1 = error, 2 = marker or match found.
"""

import argparse
import json
import os
import sys
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Callable, List, Optional, cast

from pydantic import ValidationError

try:
    from .config import Settings, describe_errors
    from .corpus import load_references
    from .log_config import configure_logging
    from .registry import MarkerRegistry, RegistryError
    from .similarity import SimilarityScorer
    from .stegano_core import SteganoEngine, UnsupportedMarkerCharacter
    from .text_injector import TextInjector
    from .text_tracer import TextTracer
except ImportError:
    # Direct script execution
    from config import Settings, describe_errors
    from corpus import load_references
    from log_config import configure_logging
    from registry import MarkerRegistry, RegistryError
    from similarity import SimilarityScorer
    from stegano_core import SteganoEngine, UnsupportedMarkerCharacter
    from text_injector import TextInjector
    from text_tracer import TextTracer


# ═══════════════════════════════════════════════════════════════════════════════
# CLI OUTPUT FORMATTING
# ═══════════════════════════════════════════════════════════════════════════════


class ConsoleOutput:
    """Handles formatted console output with optional color support."""

    # ANSI color codes (disabled if not TTY)
    COLORS_ENABLED = sys.stdout.isatty()

    RESET = "\033[0m" if COLORS_ENABLED else ""
    BOLD = "\033[1m" if COLORS_ENABLED else ""
    GREEN = "\033[92m" if COLORS_ENABLED else ""
    RED = "\033[91m" if COLORS_ENABLED else ""
    YELLOW = "\033[93m" if COLORS_ENABLED else ""
    BLUE = "\033[94m" if COLORS_ENABLED else ""
    CYAN = "\033[96m" if COLORS_ENABLED else ""

    @classmethod
    def banner(cls) -> None:
        """Print the application banner."""
        print(
            f"""
{cls.CYAN}╔═══════════════════════════════════════════════════════════════╗
║  {cls.BOLD}textmark-trace{cls.RESET}{cls.CYAN}                                               ║
║  Invisible Authorship Markers & Similarity Checks              ║
║  Version 1.0.0 | MIT License                                   ║
╚═══════════════════════════════════════════════════════════════╝{cls.RESET}
"""
        )

    @classmethod
    def success(cls, message: str) -> None:
        print(f"{cls.GREEN}✓ {message}{cls.RESET}")

    @classmethod
    def error(cls, message: str) -> None:
        print(f"{cls.RED}✗ {message}{cls.RESET}")

    @classmethod
    def warning(cls, message: str) -> None:
        print(f"{cls.YELLOW}⚠ {message}{cls.RESET}")

    @classmethod
    def info(cls, message: str) -> None:
        print(f"{cls.BLUE}ℹ {message}{cls.RESET}")

    @classmethod
    def alert(cls, message: str) -> None:
        print(f"{cls.RED}{cls.BOLD}🚨 {message}{cls.RESET}")


# ═══════════════════════════════════════════════════════════════════════════════
# FILE HELPERS
# ═══════════════════════════════════════════════════════════════════════════════


def _read_text(path: Path) -> Optional[str]:
    """Read a UTF-8 file without newline translation, reporting failures."""
    if not path.exists():
        ConsoleOutput.error(f"File not found: {path}")
        return None
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        ConsoleOutput.error(f"Not a UTF-8 text file: {path} ({e.reason})")
        return None
    except OSError as e:
        ConsoleOutput.error(f"Failed to read file: {e}")
        return None


def _write_text(path: Path, text: str) -> bool:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        ConsoleOutput.error(f"Failed to write output file: {e}")
        return False
    return True


def _load_registry(path: Optional[str]) -> Optional[MarkerRegistry]:
    if not path:
        return None
    return MarkerRegistry.load(path)


# ═══════════════════════════════════════════════════════════════════════════════
# COMMAND HANDLERS
# ═══════════════════════════════════════════════════════════════════════════════


def cmd_embed(args: argparse.Namespace) -> int:
    """
    Handle the 'embed' command - hide a marker in a text document.

    The marker defaults to "Author: <name>" built from --author.
    """
    ConsoleOutput.banner()

    input_path = Path(args.file)
    text = _read_text(input_path)
    if text is None:
        return 1

    marker = args.marker or f"Author: {args.author or 'Unknown'}"
    # Fails before any output is written
    registry = _load_registry(args.registry or args.settings.registry)
    ConsoleOutput.info(f"Embedding marker: '{marker}'")

    try:
        report = TextInjector(SteganoEngine()).inject(text, marker)
    except UnsupportedMarkerCharacter as e:
        ConsoleOutput.error(str(e))
        ConsoleOutput.info("Markers are limited to Latin-1 characters (code points 0-255).")
        return 1
    except ValueError as e:
        ConsoleOutput.error(str(e))
        return 1

    if args.output:
        output_path = Path(args.output)
    else:
        output_path = input_path.with_stem(f"{input_path.stem}_marked")

    if not _write_text(output_path, report.watermarked_text):
        return 1

    for warning in report.warnings:
        ConsoleOutput.warning(warning)

    print()
    ConsoleOutput.success(f"Marker embedded {report.total_injections} time(s)")
    ConsoleOutput.info(f"Output file: {output_path}")

    if registry is not None:
        entry = registry.register(marker, input_path.name, report.checksum)
        registry.save()
        ConsoleOutput.info(f"Registered as {entry.watermark_id} in {registry.path}")

    if args.verbose:
        print()
        print(report.summary())

    return 0


def cmd_extract(args: argparse.Namespace) -> int:
    """Handle the 'extract' command - print the first embedded marker."""
    input_path = Path(args.file)
    text = _read_text(input_path)
    if text is None:
        return 1

    marker = TextTracer().extract(text)

    if args.json_output:
        print(json.dumps({"file": str(input_path), "marker": marker}, ensure_ascii=False))
    elif marker is not None:
        ConsoleOutput.alert("MARKER FOUND")
        print(marker)
    else:
        ConsoleOutput.success(f"No marker present: {input_path}")

    return 2 if marker is not None else 0


def cmd_trace(args: argparse.Namespace) -> int:
    """
    Handle the 'trace' command - forensic analysis of a document.

    Reports every invisible run, and cross-checks the marker against a
    registry when one is configured.
    """
    input_path = Path(args.file)
    if not args.json_output:
        ConsoleOutput.banner()
        ConsoleOutput.info(f"Scanning: {input_path}")
        print()

    text = _read_text(input_path)
    if text is None:
        return 1

    registry = _load_registry(args.registry or args.settings.registry)
    report = TextTracer(registry=registry).trace(text, source=str(input_path))

    if args.json_output:
        print(report.to_json())
        return 2 if report.watermarks_found else 0

    print(report.forensic_summary())
    print()

    if report.watermarks_found:
        ConsoleOutput.alert("MARKER DETECTED!")
        print(f"   Embedded marker: {ConsoleOutput.BOLD}{report.marker}{ConsoleOutput.RESET}")
        return 2

    if report.findings:
        ConsoleOutput.warning("Invisible characters found, but the first run is not a valid marker.")
    else:
        ConsoleOutput.success("No marker detected in this document.")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Handle the 'verify' command - quick marker presence check."""
    input_path = Path(args.file)

    if not input_path.exists():
        if not args.quiet:
            ConsoleOutput.error(f"File not found: {input_path}")
        return 1

    try:
        with open(input_path, encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        if not args.quiet:
            ConsoleOutput.error(f"Failed to read file: {e}")
        return 1

    has_marker = TextTracer().has_watermark(text)

    if args.quiet:
        return 2 if has_marker else 0
    if has_marker:
        ConsoleOutput.alert(f"MARKER PRESENT: {input_path}")
        return 2
    ConsoleOutput.success(f"No marker: {input_path}")
    return 0


def cmd_strip(args: argparse.Namespace) -> int:
    """Handle the 'strip' command - remove invisible characters."""
    input_path = Path(args.file)
    text = _read_text(input_path)
    if text is None:
        return 1

    engine = SteganoEngine()
    cleaned = engine.strip(text)
    removed = len(text) - len(cleaned)

    output_path = Path(args.output) if args.output else input_path.with_stem(f"{input_path.stem}_clean")
    if not _write_text(output_path, cleaned):
        return 1

    ConsoleOutput.success(f"Removed {removed} invisible character(s)")
    ConsoleOutput.info(f"Output file: {output_path}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """
    Handle the 'check' command - rank reference documents by similarity.

    Returns 2 when at least one reference scores above the threshold.
    """
    settings: Settings = args.settings
    query_path = Path(args.file)
    query = _read_text(query_path)
    if query is None:
        return 1

    chunk_size = args.chunk_size if args.chunk_size is not None else settings.chunk_size
    threshold = args.threshold if args.threshold is not None else settings.threshold
    workers = args.workers if args.workers is not None else settings.workers
    evidence = args.evidence if args.evidence is not None else settings.evidence_limit

    references = load_references(args.corpus, pattern=args.pattern, exclude=[query_path])
    if not references:
        ConsoleOutput.error("No reference documents found in the corpus.")
        return 1

    try:
        scorer = SimilarityScorer(
            chunk_size=chunk_size,
            evidence_limit=evidence,
            max_workers=workers,
            timeout=args.timeout,
        )
        report = scorer.check(query, references, threshold=threshold)
    except ValueError as e:
        ConsoleOutput.error(str(e))
        return 1
    except FuturesTimeoutError:
        ConsoleOutput.error(f"Similarity check exceeded the {args.timeout}s deadline")
        return 1

    if args.json_output:
        print(report.to_json())
    else:
        ConsoleOutput.banner()
        ConsoleOutput.info(f"Query: {query_path} against {len(references)} reference(s)")
        print()
        print(report.summary())
        print()
        best = report.best_match
        if best is not None:
            ConsoleOutput.alert(f"Best match: {best.name or best.reference_id} ({best.score:.1%})")
        else:
            ConsoleOutput.success("No significant overlap found.")

    return 2 if report.flagged else 0


def cmd_demo(args: argparse.Namespace) -> int:
    """Handle the 'demo' command - in-memory walkthrough of every workflow."""
    ConsoleOutput.banner()

    print(f"{ConsoleOutput.CYAN}═══ DEMONSTRATION MODE ═══{ConsoleOutput.RESET}")
    print()

    essay = (
        "Zero-width characters are part of Unicode.\n\n"
        "They render with no width at all, so readers never notice them.\n\n"
        "That makes them a quiet place to keep an authorship note."
    )
    marker = "Author: Demo User"

    engine = SteganoEngine()
    report = TextInjector(engine).inject(essay, marker)
    ConsoleOutput.success(f"Embedded '{marker}' {report.total_injections} time(s)")
    print(f"  Original length:    {len(essay)} chars")
    print(f"  Watermarked length: {len(report.watermarked_text)} chars")
    print(f"  Visible text equal: {engine.strip(report.watermarked_text) == essay}")
    print()

    # A reader copies only the last paragraph
    copied = report.watermarked_text.split("\n\n", 1)[1]
    print(f"{ConsoleOutput.YELLOW}═══ FORENSIC TRACE OF A PARTIAL COPY ═══{ConsoleOutput.RESET}")
    print(TextTracer(engine).trace(copied, source="<partial copy>").forensic_summary())
    print()

    print(f"{ConsoleOutput.YELLOW}═══ SIMILARITY CHECK ═══{ConsoleOutput.RESET}")
    corpus = [
        ("essay", essay),
        ("notes", "Unicode has many characters. Some of them have no width."),
        ("recipe", "Mix flour with water and salt, then knead the dough for ten minutes."),
    ]
    similarity = SimilarityScorer(chunk_size=3).check(copied, corpus)
    print(similarity.summary())

    return 0


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════════


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="textmark-trace",
        description="Invisible authorship markers and chunk-overlap similarity checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s embed essay.txt "Author: Jane Doe"     Hide a marker
  %(prog)s extract copied.txt                     Recover a marker
  %(prog)s trace copied.txt --json                Forensic report
  %(prog)s check submission.txt corpus/           Similarity ranking
  %(prog)s demo                                   Run demonstration
        """,
    )
    parser.add_argument("--log-level", help="Logging level (default: $TEXTMARK_LOG_LEVEL or WARNING)")

    subparsers = parser.add_subparsers(dest="command", title="commands", description="Available operations")

    # ─────────────────────────────────────────────────────────────────────────
    # EMBED command
    # ─────────────────────────────────────────────────────────────────────────
    embed_parser = subparsers.add_parser(
        "embed",
        help="Hide an invisible marker in a text file",
        description="Write a copy of a UTF-8 text file with an invisible authorship marker.",
    )
    embed_parser.add_argument("file", help="Input text file")
    embed_parser.add_argument("marker", nargs="?", help="Marker text (default: 'Author: <author>')")
    embed_parser.add_argument("--author", help="Author name used for the default marker")
    embed_parser.add_argument("-o", "--output", help="Output file path (default: <input>_marked)")
    embed_parser.add_argument("--registry", help="Record the marker in this registry JSON file")
    embed_parser.add_argument("-v", "--verbose", action="store_true", help="Show detailed injection report")
    embed_parser.set_defaults(func=cmd_embed)

    # ─────────────────────────────────────────────────────────────────────────
    # EXTRACT command
    # ─────────────────────────────────────────────────────────────────────────
    extract_parser = subparsers.add_parser(
        "extract",
        help="Print the embedded marker",
        description="Decode the first invisible run of a text file.",
    )
    extract_parser.add_argument("file", help="Text file to read")
    extract_parser.add_argument("--json", dest="json_output", action="store_true", help="Output JSON")
    extract_parser.set_defaults(func=cmd_extract)

    # ─────────────────────────────────────────────────────────────────────────
    # TRACE command
    # ─────────────────────────────────────────────────────────────────────────
    trace_parser = subparsers.add_parser(
        "trace",
        help="Forensic analysis of invisible runs",
        description="Report every invisible run in a document and the marker it carries.",
    )
    trace_parser.add_argument("file", help="Text file to analyze")
    trace_parser.add_argument("--registry", help="Cross-check the marker against this registry")
    trace_parser.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Output results as JSON (machine-readable)",
    )
    trace_parser.set_defaults(func=cmd_trace)

    # ─────────────────────────────────────────────────────────────────────────
    # VERIFY command
    # ─────────────────────────────────────────────────────────────────────────
    verify_parser = subparsers.add_parser(
        "verify",
        help="Quick check for marker presence",
        description="Fast check whether a file carries a decodable marker.",
    )
    verify_parser.add_argument("file", help="Text file to check")
    verify_parser.add_argument("-q", "--quiet", action="store_true", help="Silent mode - only return exit code")
    verify_parser.set_defaults(func=cmd_verify)

    # ─────────────────────────────────────────────────────────────────────────
    # STRIP command
    # ─────────────────────────────────────────────────────────────────────────
    strip_parser = subparsers.add_parser(
        "strip",
        help="Remove invisible characters",
        description="Write a copy of a text file without any invisible alphabet characters.",
    )
    strip_parser.add_argument("file", help="Text file to clean")
    strip_parser.add_argument("-o", "--output", help="Output file path (default: <input>_clean)")
    strip_parser.set_defaults(func=cmd_strip)

    # ─────────────────────────────────────────────────────────────────────────
    # CHECK command
    # ─────────────────────────────────────────────────────────────────────────
    check_parser = subparsers.add_parser(
        "check",
        help="Rank reference documents by similarity",
        description="Compare a document against text files and directories of text files.",
    )
    check_parser.add_argument("file", help="Query text file")
    check_parser.add_argument("corpus", nargs="+", help="Reference files or directories")
    check_parser.add_argument("-k", "--chunk-size", type=int, help="Words per chunk (default: 5)")
    check_parser.add_argument("--threshold", type=float, help="Flag scores above this (default: 0.1)")
    check_parser.add_argument("--evidence", type=int, help="Shared chunks shown per match (default: 5)")
    check_parser.add_argument("--workers", type=int, help="Scoring threads (default: 1)")
    check_parser.add_argument("--timeout", type=float, help="Deadline in seconds for threaded scoring")
    check_parser.add_argument("--pattern", default="*.txt", help="Glob for directory members (default: *.txt)")
    check_parser.add_argument("--json", dest="json_output", action="store_true", help="Output JSON")
    check_parser.set_defaults(func=cmd_check)

    # ─────────────────────────────────────────────────────────────────────────
    # DEMO command
    # ─────────────────────────────────────────────────────────────────────────
    demo_parser = subparsers.add_parser(
        "demo",
        help="Run interactive demonstration",
        description="Demonstrate embedding, partial-copy tracing and similarity checks in memory.",
    )
    demo_parser.set_defaults(func=cmd_demo)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        args.settings = Settings()
        configure_logging(args.log_level or args.settings.log_level)
    except ValidationError as e:
        for message in describe_errors(e):
            ConsoleOutput.error(f"Invalid configuration: {message}")
        return 1
    except ValueError as e:
        ConsoleOutput.error(f"Invalid configuration: {e}")
        return 1

    if args.command is None:
        parser.print_help()
        return 0

    try:
        func = cast(Callable[[argparse.Namespace], int], args.func)
        return func(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled.")
        return 130
    except RegistryError as e:
        ConsoleOutput.error(str(e))
        return 1
    except Exception as e:
        ConsoleOutput.error(f"Unexpected error: {e}")
        if os.environ.get("DEBUG"):
            raise
        return 1


if __name__ == "__main__":
    sys.exit(main())

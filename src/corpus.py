"""
corpus.py - Reference Corpus Loading

Collects reference documents for similarity checks from plain-text files.
Directories are expanded to the files matching a glob pattern, sorted by
name so the corpus order (and therefore tie-breaking) is reproducible.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Union

try:
    from .similarity import Reference
except ImportError:
    from similarity import Reference

logger = logging.getLogger(__name__)


def load_references(
    paths: Iterable[Union[str, Path]],
    pattern: str = "*.txt",
    exclude: Iterable[Union[str, Path]] = (),
) -> List[Reference]:
    """
    Read every file named in paths (directories expanded with pattern).

    Files that are missing or not valid UTF-8 are skipped with a warning.
    Paths listed in exclude (typically the query file itself) are skipped
    silently. Each Reference uses the file path as id and the file name as
    display name.
    """
    excluded = {Path(p).resolve() for p in exclude}
    references: List[Reference] = []
    seen = set()

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = sorted(p for p in path.glob(pattern) if p.is_file())
        else:
            candidates = [path]

        for candidate in candidates:
            resolved = candidate.resolve()
            if resolved in excluded or resolved in seen:
                continue
            try:
                text = candidate.read_text(encoding="utf-8")
            except FileNotFoundError:
                logger.warning("Reference %s not found, skipping", candidate)
                continue
            except UnicodeDecodeError:
                logger.warning("Reference %s is not UTF-8 text, skipping", candidate)
                continue

            seen.add(resolved)
            references.append(Reference(id=str(candidate), text=text, name=candidate.name))

    logger.debug("Loaded %d reference documents", len(references))
    return references

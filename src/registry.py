"""
registry.py - Marker Registry

Keeps a record of every marker issued by `textmark-trace embed` so that a
marker recovered later can be traced back to the document it was issued
for. The registry is a single UTF-8 JSON file:

    {
      "version": 1,
      "entries": [
        {"watermark_id": "...", "marker": "Author: Jane Doe",
         "filename": "essay.txt", "checksum": "...", "created_at": "..."}
      ]
    }
"""

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

REGISTRY_VERSION = 1


class RegistryError(Exception):
    """Raised when a registry file cannot be read or has an invalid layout."""


@dataclass(frozen=True)
class RegistryEntry:
    """One issued marker."""

    watermark_id: str
    marker: str
    filename: str
    checksum: str = ""
    created_at: str = ""


@dataclass
class MarkerRegistry:
    """
    In-memory view of a registry file.

    Example:
        >>> registry = MarkerRegistry.load("markers.json")
        >>> entry = registry.register("Author: Jane Doe", "essay.txt")
        >>> registry.save()
        >>> registry.lookup("Author: Jane Doe").filename
        'essay.txt'
    """

    path: Optional[Path] = None
    entries: List[RegistryEntry] = field(default_factory=list)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "MarkerRegistry":
        """Load a registry file; a missing file yields an empty registry."""
        path = Path(path)
        if not path.exists():
            logger.debug("Registry %s does not exist yet, starting empty", path)
            return cls(path=path)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RegistryError(f"Invalid registry JSON in {path}: {e}") from e
        except OSError as e:
            raise RegistryError(f"Cannot read registry {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
            raise RegistryError(f"Registry {path} has no 'entries' list")

        entries = []
        for idx, raw in enumerate(data["entries"]):
            try:
                entries.append(RegistryEntry(**raw))
            except TypeError as e:
                raise RegistryError(f"Registry {path} entry {idx} is malformed: {e}") from e

        return cls(path=path, entries=entries)

    def register(self, marker: str, filename: str, checksum: str = "") -> RegistryEntry:
        """Record a newly issued marker and return its entry."""
        entry = RegistryEntry(
            watermark_id=str(uuid.uuid4()),
            marker=marker,
            filename=filename,
            checksum=checksum,
            created_at=datetime.now().isoformat(),
        )
        self.entries.append(entry)
        logger.info("Registered marker %r for %s as %s", marker, filename, entry.watermark_id)
        return entry

    def lookup(self, marker: str) -> Optional[RegistryEntry]:
        """Return the earliest entry issued with this marker, if any."""
        for entry in self.entries:
            if entry.marker == marker:
                return entry
        return None

    def save(self, path: Union[str, Path, None] = None) -> Path:
        """Write the registry to disk (ensure_ascii=False keeps markers readable)."""
        target = Path(path) if path is not None else self.path
        if target is None:
            raise RegistryError("No registry path configured")

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(
                {"version": REGISTRY_VERSION, "entries": [asdict(e) for e in self.entries]},
                f,
                indent=2,
                ensure_ascii=False,
            )
        self.path = target
        return target

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, marker: str) -> bool:
        return self.lookup(marker) is not None

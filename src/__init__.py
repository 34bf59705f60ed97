"""
textmark-trace: Invisible Authorship Markers for Plain Text

Hides an authorship marker inside a text document with zero-width Unicode
characters, recovers it from copies of that document, and ranks reference
documents by chunk-overlap similarity.

Core Components:
    - stegano_core: Invisible alphabet and bit-level encoding primitives
    - text_injector: Paragraph-aware marker injection
    - text_tracer: Marker extraction and forensic reports
    - watermark: embed/extract facade
    - normalizer: Text normalisation and chunking
    - similarity: Jaccard scoring and ranking
    - registry: Record of issued markers
    - cli: Command-line interface for all operations

Example:
    >>> from textmark_trace import WatermarkCodec, SimilarityScorer
    >>> codec = WatermarkCodec()
    >>> marked = codec.embed("First paragraph.\\n\\nSecond paragraph.", "Author: Jane Doe")
    >>> codec.extract(marked)
    'Author: Jane Doe'

License: MIT
"""

__version__ = "1.0.0"

from .stegano_core import (
    InvisibleAlphabet,
    MalformedEncoding,
    SteganoEngine,
    UnsupportedMarkerCharacter,
    WatermarkError,
    ZeroWidthCodec,
    bits_to_invisible,
    from_bits,
    invisible_to_bits,
    to_bits,
)
from .text_injector import InjectionReport, TextInjector
from .text_tracer import TextTracer, TraceReport
from .watermark import WatermarkCodec, embed, extract
from .normalizer import ChunkSet, TextNormalizer, chunks, normalize
from .similarity import MatchResult, Reference, SimilarityReport, SimilarityScorer, jaccard, score
from .registry import MarkerRegistry, RegistryEntry, RegistryError

__all__ = [
    "InvisibleAlphabet",
    "MalformedEncoding",
    "SteganoEngine",
    "UnsupportedMarkerCharacter",
    "WatermarkError",
    "ZeroWidthCodec",
    "bits_to_invisible",
    "from_bits",
    "invisible_to_bits",
    "to_bits",
    "InjectionReport",
    "TextInjector",
    "TextTracer",
    "TraceReport",
    "WatermarkCodec",
    "embed",
    "extract",
    "ChunkSet",
    "TextNormalizer",
    "chunks",
    "normalize",
    "MatchResult",
    "Reference",
    "SimilarityReport",
    "SimilarityScorer",
    "jaccard",
    "score",
    "MarkerRegistry",
    "RegistryEntry",
    "RegistryError",
]

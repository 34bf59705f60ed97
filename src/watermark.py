"""
watermark.py - Embed/Extract Facade

The two operations a host application needs, behind one object:

    >>> codec = WatermarkCodec()
    >>> marked = codec.embed("Hello world.\\n\\nGoodbye.", "AB")
    >>> codec.extract(marked)
    'AB'
    >>> codec.extract("plain text with no markers") is None
    True
"""

from typing import Optional

try:
    from .stegano_core import SteganoEngine
    from .text_injector import TextInjector
    from .text_tracer import TextTracer
except ImportError:
    from stegano_core import SteganoEngine
    from text_injector import TextInjector
    from text_tracer import TextTracer


class WatermarkCodec:
    """Embeds markers into, and extracts markers from, plain text."""

    def __init__(self, engine: SteganoEngine = None):
        self._engine = engine or SteganoEngine()
        self._injector = TextInjector(self._engine)
        self._tracer = TextTracer(self._engine)

    def embed(self, host: str, marker: str) -> str:
        """
        Return host with marker hidden after every paragraph boundary.

        Raises:
            WatermarkError: If marker is empty.
            UnsupportedMarkerCharacter: If marker has a code point above 255.
        """
        return self._injector.embed(host, marker)

    def extract(self, text: str) -> Optional[str]:
        """Return the first embedded marker, or None when there is none."""
        return self._tracer.extract(text)

    def strip(self, text: str) -> str:
        """Return text with every invisible alphabet character removed."""
        return self._engine.strip(text)


_default_codec = WatermarkCodec()


def embed(host: str, marker: str) -> str:
    return _default_codec.embed(host, marker)


def extract(text: str) -> Optional[str]:
    return _default_codec.extract(text)

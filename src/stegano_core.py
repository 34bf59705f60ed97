"""
stegano_core.py - Zero-Width Unicode Bit Codec

This module implements the low-level steganographic primitives used to hide
an authorship marker inside plain text. A marker string is turned into a bit
sequence, and the bit sequence into a run of invisible Unicode characters
that renderers draw with zero width.

Encoding Scheme:
    ZERO WIDTH SPACE      (U+200B) -> Binary '0'
    ZERO WIDTH NON-JOINER (U+200C) -> Binary '1'
    ZERO WIDTH JOINER     (U+200D) -> Separator between consecutive bits

    "A" (0x41) -> 01000001 -> ZWSP ZWJ ZWNJ ZWJ ZWSP ZWJ ... ZWJ ZWNJ

    The separator makes every run self-delimiting: bit boundaries are
    recovered by splitting on ZWJ, so an unexpected symbol shows up as a
    malformed token instead of silently shifting every later bit.

Character Width:
    Each marker character occupies exactly one 8-bit group. Code points
    above 255 cannot be represented and are rejected with
    UnsupportedMarkerCharacter rather than truncated.

Security Note:
    This is provenance marking, not encryption. Anyone who knows the
    alphabet can read, strip or forge a marker.
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

BITS_PER_CHAR = 8
MAX_CODE_POINT = (1 << BITS_PER_CHAR) - 1


# ═══════════════════════════════════════════════════════════════════════════════
# ERRORS
# ═══════════════════════════════════════════════════════════════════════════════


class WatermarkError(ValueError):
    """Base class for codec errors."""


class UnsupportedMarkerCharacter(WatermarkError):
    """Raised when a marker contains a code point that does not fit in 8 bits."""

    def __init__(self, char: str, index: int):
        self.char = char
        self.index = index
        super().__init__(
            f"Marker character {char!r} (U+{ord(char):04X}) at index {index} "
            f"cannot be encoded in {BITS_PER_CHAR} bits"
        )


class MalformedEncoding(WatermarkError):
    """Raised when an invisible run or bit string does not decode to characters."""


# ═══════════════════════════════════════════════════════════════════════════════
# INVISIBLE ALPHABET
# ═══════════════════════════════════════════════════════════════════════════════


class InvisibleAlphabet(Enum):
    """
    The zero-width code points that carry an encoded marker.

    All three belong to the "General Punctuation" block and are format
    characters: they are preserved by copy/paste and text editors but
    have no visible glyph.
    """

    ZERO = "\u200b"  # ZERO WIDTH SPACE
    ONE = "\u200c"  # ZERO WIDTH NON-JOINER
    SEPARATOR = "\u200d"  # ZERO WIDTH JOINER

    @classmethod
    def for_bit(cls, bit: str) -> "InvisibleAlphabet":
        return cls.ZERO if bit == "0" else cls.ONE


class ZeroWidthCodec:
    """Character-level helpers over the invisible alphabet."""

    ZERO: str = InvisibleAlphabet.ZERO.value
    ONE: str = InvisibleAlphabet.ONE.value
    SEPARATOR: str = InvisibleAlphabet.SEPARATOR.value

    ALL_CHARS: frozenset = frozenset(symbol.value for symbol in InvisibleAlphabet)

    # Maximal runs of alphabet characters
    RUN_PATTERN = re.compile("[" + "".join(symbol.value for symbol in InvisibleAlphabet) + "]+")

    @classmethod
    def is_zero_width(cls, char: str) -> bool:
        """Check if a character belongs to the invisible alphabet."""
        return char in cls.ALL_CHARS

    @classmethod
    def contains_markers(cls, text: str) -> bool:
        """Quick check if text contains any invisible alphabet characters."""
        return any(c in cls.ALL_CHARS for c in text)


# ═══════════════════════════════════════════════════════════════════════════════
# BIT CODEC
# ═══════════════════════════════════════════════════════════════════════════════


def to_bits(text: str) -> str:
    """
    Convert a string to its bit sequence, one 8-bit group per code point.

    Raises:
        UnsupportedMarkerCharacter: If any code point is above 255.
    """
    groups = []
    for index, char in enumerate(text):
        if ord(char) > MAX_CODE_POINT:
            raise UnsupportedMarkerCharacter(char, index)
        groups.append(format(ord(char), "08b"))
    return "".join(groups)


def from_bits(bits: str) -> str:
    """
    Convert a bit sequence back into a string.

    Raises:
        MalformedEncoding: If the length is not a multiple of 8 or the
            sequence contains anything other than '0' and '1'.
    """
    if len(bits) % BITS_PER_CHAR != 0:
        raise MalformedEncoding(f"Invalid bit length {len(bits)} (not multiple of {BITS_PER_CHAR})")
    if set(bits) - {"0", "1"}:
        raise MalformedEncoding("Bit sequence contains non-binary digits")

    return "".join(
        chr(int(bits[i : i + BITS_PER_CHAR], 2)) for i in range(0, len(bits), BITS_PER_CHAR)
    )


def bits_to_invisible(bits: str) -> str:
    """Map each bit to ZERO/ONE and join the symbols with SEPARATOR."""
    return ZeroWidthCodec.SEPARATOR.join(InvisibleAlphabet.for_bit(bit).value for bit in bits)


def invisible_to_bits(run: str) -> str:
    """
    Split an invisible run on SEPARATOR and map each token back to a bit.

    Raises:
        MalformedEncoding: If a token is not exactly one ZERO or ONE symbol.
    """
    bits = []
    for position, token in enumerate(run.split(ZeroWidthCodec.SEPARATOR)):
        if token == ZeroWidthCodec.ZERO:
            bits.append("0")
        elif token == ZeroWidthCodec.ONE:
            bits.append("1")
        else:
            raise MalformedEncoding(f"Unrecognised bit token {token!r} at position {position}")
    return "".join(bits)


# ═══════════════════════════════════════════════════════════════════════════════
# DATA CLASSES FOR STRUCTURED RESULTS
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EncodeResult:
    """
    Result of encoding a marker into invisible characters.

    Attributes:
        invisible_run: The encoded marker as an invisible Unicode string
        bit_length: Number of bits in the encoding
        char_length: Number of characters in the original marker
        checksum: Truncated SHA-256 of the marker (for registry records)
    """

    invisible_run: str
    bit_length: int
    char_length: int
    checksum: str

    def __len__(self) -> int:
        """Returns the number of invisible characters (bits plus separators)."""
        return len(self.invisible_run)


@dataclass(frozen=True)
class DecodeResult:
    """
    Result of decoding one invisible run.

    Attributes:
        marker: The decoded marker, None when decoding failed
        bit_length: Number of bits recovered from the run
        is_valid: Whether decoding completed successfully
        error: Error message if decoding failed, None otherwise
    """

    marker: Optional[str]
    bit_length: int
    is_valid: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class InvisibleRun:
    """A maximal run of invisible alphabet characters found in a text."""

    start: int
    end: int
    content: str

    def __len__(self) -> int:
        return self.end - self.start


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN STEGANOGRAPHY ENGINE
# ═══════════════════════════════════════════════════════════════════════════════


class SteganoEngine:
    """
    Converts markers to invisible runs and back.

    The engine knows nothing about documents or paragraphs; placement is
    handled by TextInjector and scanning policy by TextTracer.

    Example:
        >>> engine = SteganoEngine()
        >>> encoded = engine.encode("AB")
        >>> len(encoded)  # 16 bits + 15 separators
        31
        >>> engine.decode(encoded.invisible_run).marker
        'AB'

    Thread Safety:
        This class is stateless and thread-safe. All methods are pure functions.
    """

    def encode(self, marker: str) -> EncodeResult:
        """
        Encode a marker into an invisible run.

        Args:
            marker: The text to hide. Every code point must be <= 255.

        Returns:
            EncodeResult containing the invisible run and metadata.

        Raises:
            WatermarkError: If marker is empty or None.
            UnsupportedMarkerCharacter: If a code point does not fit in 8 bits.
        """
        if not marker:
            raise WatermarkError("Marker cannot be empty")

        bits = to_bits(marker)
        invisible_run = bits_to_invisible(bits)
        checksum = hashlib.sha256(marker.encode("utf-8")).hexdigest()[:16]

        logger.debug("Encoded %d chars into %d invisible symbols", len(marker), len(invisible_run))
        return EncodeResult(
            invisible_run=invisible_run,
            bit_length=len(bits),
            char_length=len(marker),
            checksum=checksum,
        )

    def decode(self, run: str) -> DecodeResult:
        """
        Decode a single invisible run back into a marker.

        Never raises: codec failures are reported through DecodeResult.
        """
        try:
            bits = invisible_to_bits(run)
            marker = from_bits(bits)
        except MalformedEncoding as e:
            logger.debug("Invisible run of length %d rejected: %s", len(run), e)
            return DecodeResult(marker=None, bit_length=0, is_valid=False, error=str(e))

        return DecodeResult(marker=marker, bit_length=len(bits), is_valid=True)

    def find_runs(self, text: str) -> List[InvisibleRun]:
        """Return every maximal invisible run in document order."""
        return [
            InvisibleRun(start=match.start(), end=match.end(), content=match.group())
            for match in ZeroWidthCodec.RUN_PATTERN.finditer(text)
        ]

    def first_run(self, text: str) -> Optional[InvisibleRun]:
        """Return the first invisible run in document order, or None."""
        match = ZeroWidthCodec.RUN_PATTERN.search(text)
        if match is None:
            return None
        return InvisibleRun(start=match.start(), end=match.end(), content=match.group())

    def strip(self, text: str) -> str:
        """
        Remove all invisible alphabet characters from text.

        This destroys any embedded marker along with the evidence it carries.
        """
        return ZeroWidthCodec.RUN_PATTERN.sub("", text)

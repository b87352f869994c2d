"""RFC 4648 Base32 codec for secret transport and display.

Canonical output is uppercase without padding. Decoding is case-insensitive,
tolerates missing padding and ignores whitespace or ``-`` group separators
that authenticator apps show in manual-entry keys.
"""

from __future__ import annotations

import base64
import binascii
import re

from otpvault.errors import InvalidEncoding

_ALPHABET = re.compile(r"^[A-Z2-7]+=*$")
_SEPARATORS = re.compile(r"[\s-]+")

# Unpadded lengths mod 8 that no byte sequence can produce
_IMPOSSIBLE_REMAINDERS = {1, 3, 6}


def encode(data: bytes) -> str:
    """Encode bytes as uppercase Base32 without padding."""
    return base64.b32encode(data).decode("ascii").rstrip("=")


def normalize(text: str) -> str:
    """Return the canonical (uppercase, unpadded) form of a Base32 string."""
    if not isinstance(text, str):
        raise InvalidEncoding(f"Base32 input must be text, got {type(text).__name__}")
    cleaned = _SEPARATORS.sub("", text).upper()
    if not cleaned or not _ALPHABET.match(cleaned):
        raise InvalidEncoding("Base32 input contains characters outside A-Z and 2-7")
    stripped = cleaned.rstrip("=")
    if not stripped or len(stripped) % 8 in _IMPOSSIBLE_REMAINDERS:
        raise InvalidEncoding(f"Base32 input has an invalid length ({len(stripped)} characters)")
    return stripped


def decode(text: str) -> bytes:
    """Decode Base32 text. Raises :class:`InvalidEncoding` on bad input."""
    stripped = normalize(text)
    padded = stripped + "=" * (-len(stripped) % 8)
    try:
        return base64.b32decode(padded)
    except binascii.Error as exc:
        raise InvalidEncoding(f"Base32 input could not be decoded: {exc}") from exc

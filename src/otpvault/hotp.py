"""HOTP (RFC 4226) counter-based one-time codes.

The HMAC and dynamic truncation are delegated to pyotp; this module pins the
accepted hash variants and code lengths and takes raw secret bytes so the
engine never depends on how a secret happened to be stored.
"""

from __future__ import annotations

import pyotp

from otpvault import base32
from otpvault.models import Algorithm, validate_digits

MAX_COUNTER = 2**64 - 1


def compute(secret: bytes, counter: int, digits: int = 6, algorithm: Algorithm | str = Algorithm.SHA1) -> str:
    """Compute the HOTP code for ``counter``.

    Returns a zero-padded decimal string of exactly ``digits`` characters.
    Raises UnsupportedAlgorithm, InvalidDigits, or ValueError for an empty
    secret or a counter outside the unsigned 64-bit range.
    """
    alg = Algorithm.parse(algorithm)
    validate_digits(digits)
    if not secret:
        raise ValueError("secret must not be empty")
    if not 0 <= counter <= MAX_COUNTER:
        raise ValueError(f"counter must fit in an unsigned 64-bit integer, got {counter}")
    return pyotp.HOTP(base32.encode(secret), digits=digits, digest=alg.digest).at(counter)

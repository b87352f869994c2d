"""Error taxonomy shared by the codec, engine, vault and scheduler.

Validation failures are local to one operation and never retried. Only a
missing encryption key at startup is treated as fatal to the process.
"""

from __future__ import annotations


class OtpVaultError(Exception):
    """Base class for every error raised by otpvault."""


# === Validation ===


class InvalidEncoding(OtpVaultError, ValueError):
    """Text is not valid RFC 4648 Base32."""


class UnsupportedAlgorithm(OtpVaultError, ValueError):
    """Hash variant is not SHA1, SHA256 or SHA512."""


class InvalidDigits(OtpVaultError, ValueError):
    """Code length is outside the accepted range."""


class InvalidPeriod(OtpVaultError, ValueError):
    """TOTP period is outside the accepted range."""


class InvalidWindow(OtpVaultError, ValueError):
    """Verification window is negative or wider than allowed."""


# === Vault ===


class MalformedBlob(OtpVaultError, ValueError):
    """Stored blob is missing a part, or a part has the wrong size."""


class AuthenticationFailure(OtpVaultError):
    """GCM tag did not verify: tampered data or the wrong key."""


class InvalidEncryptionKey(OtpVaultError, ValueError):
    """Configured key is not 32 bytes of hex."""


class MissingEncryptionKey(OtpVaultError, RuntimeError):
    """No encryption key configured. Fatal at startup."""


# === Randomness ===


class GenerationFailure(OtpVaultError, RuntimeError):
    """The OS secure random source is unavailable."""

"""Value objects flowing between the engine, vault and scheduler."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from otpvault.errors import InvalidDigits, InvalidPeriod, MalformedBlob, UnsupportedAlgorithm

ALLOWED_DIGITS = (6, 7, 8)
MIN_PERIOD = 15
MAX_PERIOD = 300

IV_SIZE = 12  # 96-bit nonce for AES-GCM
TAG_SIZE = 16


# === Enums ===


class Algorithm(StrEnum):
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @classmethod
    def _missing_(cls, value: object) -> Algorithm | None:
        if isinstance(value, str):
            upper = value.strip().upper().replace("-", "")
            for member in cls:
                if member.value == upper:
                    return member
        return None

    @classmethod
    def parse(cls, value: str | Algorithm) -> Algorithm:
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedAlgorithm(f"Unsupported hash algorithm: {value!r}") from None

    @property
    def digest(self) -> Callable[..., Any]:
        return _DIGESTS[self]


_DIGESTS = {
    Algorithm.SHA1: hashlib.sha1,
    Algorithm.SHA256: hashlib.sha256,
    Algorithm.SHA512: hashlib.sha512,
}


class RefreshPhase(StrEnum):
    AWAITING_BOUNDARY = "awaiting_boundary"
    REFRESHED = "refreshed"


# === Credential config ===


def validate_digits(digits: int) -> int:
    if isinstance(digits, bool) or not isinstance(digits, int) or digits not in ALLOWED_DIGITS:
        raise InvalidDigits(f"digits must be one of {ALLOWED_DIGITS}, got {digits!r}")
    return digits


def validate_period(period: int) -> int:
    if isinstance(period, bool) or not isinstance(period, int) or not MIN_PERIOD <= period <= MAX_PERIOD:
        raise InvalidPeriod(f"period must be between {MIN_PERIOD} and {MAX_PERIOD} seconds, got {period!r}")
    return period


@dataclass(frozen=True, slots=True)
class TotpConfig:
    """Code length, period and hash variant attached to one secret.

    Values are validated on construction and never clamped. ``algorithm``
    accepts any case ("sha1", "SHA1") and is stored as an :class:`Algorithm`.
    """

    digits: int = 6
    period: int = 30
    algorithm: Algorithm = Algorithm.SHA1

    def __post_init__(self) -> None:
        validate_digits(self.digits)
        validate_period(self.period)
        object.__setattr__(self, "algorithm", Algorithm.parse(self.algorithm))

    @property
    def is_default(self) -> bool:
        return self == TotpConfig()


# === Vault ===


@dataclass(frozen=True, slots=True)
class EncryptedBlob:
    """AES-GCM output. All three parts are required to decrypt."""

    iv: bytes
    auth_tag: bytes
    ciphertext: bytes

    def __post_init__(self) -> None:
        for name in ("iv", "auth_tag", "ciphertext"):
            if not isinstance(getattr(self, name), bytes):
                raise MalformedBlob(f"{name} is missing")
        if len(self.iv) != IV_SIZE:
            raise MalformedBlob(f"iv must be {IV_SIZE} bytes, got {len(self.iv)}")
        if len(self.auth_tag) != TAG_SIZE:
            raise MalformedBlob(f"auth tag must be {TAG_SIZE} bytes, got {len(self.auth_tag)}")
        if not self.ciphertext:
            raise MalformedBlob("ciphertext is empty")

    def to_text(self) -> str:
        """Serialize as ``iv:authTag:ciphertext`` in hex."""
        return f"{self.iv.hex()}:{self.auth_tag.hex()}:{self.ciphertext.hex()}"

    @classmethod
    def from_text(cls, text: str) -> EncryptedBlob:
        if not isinstance(text, str):
            raise MalformedBlob("stored blob is missing")
        parts = text.strip().split(":")
        if len(parts) != 3 or not all(parts):
            raise MalformedBlob("stored blob must be three non-empty colon-delimited hex fields")
        try:
            iv, tag, ct = (bytes.fromhex(p) for p in parts)
        except ValueError:
            raise MalformedBlob("stored blob contains non-hex characters") from None
        return cls(iv=iv, auth_tag=tag, ciphertext=ct)


# === Outputs ===


class AccountCodeState(BaseModel):
    """Current code for one account, as shown to a caller."""

    account_id: str
    current_code: str
    seconds_remaining: int
    counter: int
    period: int


class AccountError(BaseModel):
    """Per-account failure that did not stop other accounts from refreshing."""

    account_id: str
    error: str


class ProvisionedSecret(BaseModel):
    """Freshly issued secret with its provisioning URI and optional QR image."""

    secret: str
    uri: str
    qr_image: str | None = None

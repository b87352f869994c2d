"""Central configuration loaded from environment variables and .env files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from otpvault.models import Algorithm

MAX_VERIFY_WINDOW = 10
MIN_SECRET_BYTES = 20


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Encryption (64 hex chars = 32-byte AES-256 key)
    otpvault_encryption_key: str = ""

    # Default TOTP policy, used when an account omits its own
    default_digits: int = 6
    default_period: int = 30
    default_algorithm: Algorithm = Algorithm.SHA1

    # Verification
    verify_window: int = Field(default=1, ge=0, le=MAX_VERIFY_WINDOW)

    # Provisioning
    default_issuer: str = "otpvault"
    secret_bytes: int = Field(default=MIN_SECRET_BYTES, ge=MIN_SECRET_BYTES)

    # Logging
    log_level: str = "INFO"


settings = Settings()

"""Authenticator service: ties the vault to the TOTP engine for stored accounts.

Account records themselves live in an external store; this layer only takes
and returns plain values (the stored ``iv:authTag:ciphertext`` text and the
account's TotpConfig).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from otpvault import base32, provisioner, totp
from otpvault.config import MIN_SECRET_BYTES, Settings, settings
from otpvault.errors import OtpVaultError
from otpvault.models import AccountCodeState, AccountError, ProvisionedSecret, TotpConfig
from otpvault.scheduler import RefreshScheduler
from otpvault.vault import SecretVault

logger = logging.getLogger(__name__)


class AuthenticatorService:
    def __init__(self, vault: SecretVault, config: Settings | None = None) -> None:
        self.vault = vault
        self.settings = config or settings

    def default_config(self) -> TotpConfig:
        """TotpConfig built from the configured default policy."""
        return TotpConfig(
            digits=self.settings.default_digits,
            period=self.settings.default_period,
            algorithm=self.settings.default_algorithm,
        )

    def enroll(
        self,
        label: str,
        issuer: str | None = None,
        config: TotpConfig | None = None,
        *,
        render_qr: bool = True,
    ) -> tuple[ProvisionedSecret, str]:
        """Issue a new secret and return it with its encrypted storage form."""
        provisioned = provisioner.generate(
            label,
            issuer or self.settings.default_issuer,
            config or self.default_config(),
            secret_bytes=self.settings.secret_bytes,
            qr_renderer=provisioner.render_qr_data_url if render_qr else None,
        )
        return provisioned, self.vault.encrypt_to_text(provisioned.secret)

    def import_secret(self, secret: str, config: TotpConfig | None = None) -> str:
        """Validate an existing Base32 secret and encrypt it for storage."""
        canonical = base32.normalize(secret)
        raw = base32.decode(canonical)
        # Proves the secret is usable with this config before it is stored
        totp.current_code(raw, config or self.default_config())
        if len(raw) < MIN_SECRET_BYTES:
            logger.warning("Imported secret is %d bytes, below the %d-byte minimum for new secrets",
                           len(raw), MIN_SECRET_BYTES)
        return self.vault.encrypt_to_text(canonical)

    def reveal_secret(self, stored: str) -> bytes:
        """Decrypt a stored secret into raw key bytes."""
        return base32.decode(self.vault.decrypt_text(stored))

    def current_state(
        self, account_id: str, stored: str, config: TotpConfig, now: float | None = None
    ) -> AccountCodeState:
        return totp.code_snapshot(self.reveal_secret(stored), config, now, account_id=account_id)

    def verify(
        self,
        candidate: str,
        stored: str,
        config: TotpConfig,
        now: float | None = None,
        window: int | None = None,
    ) -> bool:
        window = self.settings.verify_window if window is None else window
        return totp.verify(candidate, self.reveal_secret(stored), config, now, window)

    def track(
        self,
        scheduler: RefreshScheduler,
        account_id: str,
        stored: str,
        config: TotpConfig,
        now: float | None = None,
    ) -> None:
        """Decrypt an account's secret and hand it to the refresh scheduler."""
        scheduler.track(account_id, self.reveal_secret(stored), config, now)

    def snapshot_all(
        self,
        accounts: Iterable[tuple[str, str, TotpConfig]],
        now: float | None = None,
    ) -> list[AccountCodeState | AccountError]:
        """Current codes for many accounts; one failure does not sink the rest."""
        results: list[AccountCodeState | AccountError] = []
        for account_id, stored, config in accounts:
            try:
                results.append(self.current_state(account_id, stored, config, now))
            except OtpVaultError as exc:
                logger.warning("Could not compute code for %s: %s", account_id, type(exc).__name__)
                results.append(AccountError(account_id=account_id, error=type(exc).__name__))
        return results

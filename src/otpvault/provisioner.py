"""Secret provisioning: random secrets, otpauth:// URIs and QR images."""

from __future__ import annotations

import base64
import io
import logging
import os
from collections.abc import Callable

import pyotp
import qrcode

from otpvault import base32
from otpvault.config import MIN_SECRET_BYTES
from otpvault.errors import GenerationFailure
from otpvault.models import ProvisionedSecret, TotpConfig

logger = logging.getLogger(__name__)

QrRenderer = Callable[[str], str]


def random_secret(length: int = MIN_SECRET_BYTES) -> bytes:
    """Draw ``length`` bytes from the OS CSPRNG. Never degrades to a weaker source."""
    if length < MIN_SECRET_BYTES:
        raise ValueError(f"secrets must be at least {MIN_SECRET_BYTES} bytes, got {length}")
    try:
        return os.urandom(length)
    except (NotImplementedError, OSError) as exc:
        logger.critical("Secure random source unavailable: %s", exc)
        raise GenerationFailure("Secure random source unavailable") from exc


def provisioning_uri(secret: str, label: str, issuer: str, config: TotpConfig | None = None) -> str:
    """Build the otpauth:// URI for an existing Base32 secret.

    algorithm, digits and period are only emitted when they differ from the
    SHA1/6/30 defaults, which is what authenticator apps expect.
    """
    config = config or TotpConfig()
    totp = pyotp.TOTP(
        base32.normalize(secret),
        digits=config.digits,
        digest=config.algorithm.digest,
        interval=config.period,
    )
    return totp.provisioning_uri(name=label, issuer_name=issuer)


def render_qr_data_url(uri: str) -> str:
    """Render ``uri`` as a PNG QR code and return it as a data: URL."""
    img = qrcode.make(uri)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()


def generate(
    label: str,
    issuer: str,
    config: TotpConfig | None = None,
    *,
    secret_bytes: int = MIN_SECRET_BYTES,
    qr_renderer: QrRenderer | None = render_qr_data_url,
) -> ProvisionedSecret:
    """Issue a new secret for ``label`` at ``issuer``.

    Pass ``qr_renderer=None`` to skip image rendering and return only the
    secret and URI.
    """
    if not label:
        raise ValueError("label must not be empty")
    if not issuer:
        raise ValueError("issuer must not be empty")

    secret = base32.encode(random_secret(secret_bytes))
    uri = provisioning_uri(secret, label, issuer, config)
    qr_image = qr_renderer(uri) if qr_renderer is not None else None

    logger.info("Provisioned new secret for %s (%s)", label, issuer)
    return ProvisionedSecret(secret=secret, uri=uri, qr_image=qr_image)

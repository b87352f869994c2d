"""otpvault: TOTP codes, provisioning and secret-at-rest encryption."""

__version__ = "0.1.0"

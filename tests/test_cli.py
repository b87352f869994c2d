"""Tests for the command-line entry point."""

from __future__ import annotations

import pytest

from otpvault.__main__ import main
from otpvault.config import Settings
from otpvault.vault import generate_key

SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def test_keygen(capsys):
    main(["keygen"])
    out = capsys.readouterr().out
    line = next(l for l in out.splitlines() if l.startswith("OTPVAULT_ENCRYPTION_KEY="))
    assert len(line.split("=", 1)[1]) == 64


def test_code(capsys, monkeypatch):
    monkeypatch.setattr("otpvault.totp._time.time", lambda: 59.0)
    main(["code", "--secret", SECRET, "--digits", "8"])
    assert capsys.readouterr().out.startswith("94287082  (1s remaining)")


def test_verify_exit_codes(monkeypatch):
    monkeypatch.setattr("otpvault.totp._time.time", lambda: 59.0)
    with pytest.raises(SystemExit) as ok:
        main(["verify", "--secret", SECRET, "--code", "287082"])
    assert ok.value.code == 0
    with pytest.raises(SystemExit) as bad:
        main(["verify", "--secret", SECRET, "--code", "000000", "--window", "0"])
    assert bad.value.code == 1


def test_invalid_config_exits_2(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["code", "--secret", SECRET, "--period", "5"])
    assert exc.value.code == 2
    assert "period" in capsys.readouterr().err


def test_provision_without_key_is_fatal(monkeypatch, capsys):
    monkeypatch.setattr("otpvault.vault.settings", Settings(_env_file=None, otpvault_encryption_key=""))
    with pytest.raises(SystemExit) as exc:
        main(["provision", "--label", "alice", "--no-qr"])
    assert exc.value.code == 1
    assert "OTPVAULT_ENCRYPTION_KEY" in capsys.readouterr().err


def test_provision(monkeypatch, capsys):
    monkeypatch.setattr("otpvault.vault.settings", Settings(_env_file=None, otpvault_encryption_key=generate_key()))
    main(["provision", "--label", "alice", "--issuer", "ACME", "--no-qr"])
    out = capsys.readouterr().out
    assert "otpauth://totp/ACME:alice?" in out
    stored = next(l for l in out.splitlines() if l.startswith("Stored:")).split()[1]
    assert stored.count(":") == 2

"""Tests for the TOTP engine (RFC 6238 appendix B and window behaviour)."""

from __future__ import annotations

import pytest

from otpvault import base32, totp
from otpvault.errors import InvalidPeriod, InvalidWindow
from otpvault.models import Algorithm, TotpConfig

SEEDS = {
    Algorithm.SHA1: b"12345678901234567890",
    Algorithm.SHA256: b"12345678901234567890123456789012",
    Algorithm.SHA512: b"1234567890123456789012345678901234567890123456789012345678901234",
}

RFC6238_VECTORS = [
    (59, Algorithm.SHA1, "94287082"),
    (59, Algorithm.SHA256, "46119246"),
    (59, Algorithm.SHA512, "90693936"),
    (1111111109, Algorithm.SHA1, "07081804"),
    (1111111109, Algorithm.SHA256, "68084774"),
    (1111111109, Algorithm.SHA512, "25091201"),
    (1111111111, Algorithm.SHA1, "14050471"),
    (1111111111, Algorithm.SHA256, "67062674"),
    (1111111111, Algorithm.SHA512, "99943326"),
    (1234567890, Algorithm.SHA1, "89005924"),
    (1234567890, Algorithm.SHA256, "91819424"),
    (1234567890, Algorithm.SHA512, "93441116"),
    (2000000000, Algorithm.SHA1, "69279037"),
    (2000000000, Algorithm.SHA256, "90698825"),
    (2000000000, Algorithm.SHA512, "38618901"),
    (20000000000, Algorithm.SHA1, "65353130"),
    (20000000000, Algorithm.SHA256, "77737706"),
    (20000000000, Algorithm.SHA512, "47863826"),
]

SECRET = base32.decode("GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ")
CONFIG = TotpConfig()
NOW = 1_700_000_015


@pytest.mark.parametrize("t,algorithm,expected", RFC6238_VECTORS)
def test_rfc6238_vectors(t, algorithm, expected):
    config = TotpConfig(digits=8, period=30, algorithm=algorithm)
    assert totp.current_code(SEEDS[algorithm], config, t) == expected


def test_counter_for():
    assert totp.counter_for(0, 30) == 0
    assert totp.counter_for(29, 30) == 0
    assert totp.counter_for(30, 30) == 1
    assert totp.counter_for(59.9, 30) == 1
    assert totp.counter_for(1111111109, 30) == 0x23523EC


def test_counter_for_rejects_bad_period():
    with pytest.raises(InvalidPeriod):
        totp.counter_for(100, 0)


def test_seconds_remaining_bounds_and_countdown():
    for period in (15, 30, 60, 300):
        prev = None
        for t in range(1_700_000_000, 1_700_000_000 + 2 * period + 3):
            remaining = totp.seconds_remaining(t, period)
            assert 1 <= remaining <= period
            if prev is not None:
                if t % period == 0:
                    assert remaining == period
                else:
                    assert remaining == prev - 1
            prev = remaining


def test_seconds_remaining_at_boundary_is_full_period():
    assert totp.seconds_remaining(60, 30) == 30
    assert totp.seconds_remaining(59, 30) == 1


def test_current_code_verifies_at_every_second():
    for config in (CONFIG, TotpConfig(digits=8, period=60, algorithm="sha512")):
        for t in range(NOW, NOW + 125):
            code = totp.current_code(SECRET, config, t)
            assert totp.verify(code, SECRET, config, t)


def test_window_accepts_adjacent_steps():
    before = totp.current_code(SECRET, CONFIG, NOW - CONFIG.period)
    after = totp.current_code(SECRET, CONFIG, NOW + CONFIG.period)
    assert totp.verify(before, SECRET, CONFIG, NOW, window=1)
    assert totp.verify(after, SECRET, CONFIG, NOW, window=1)


def test_window_rejects_two_steps_back():
    stale = totp.current_code(SECRET, CONFIG, NOW - 2 * CONFIG.period)
    assert not totp.verify(stale, SECRET, CONFIG, NOW, window=1)


def test_window_zero_is_exact():
    before = totp.current_code(SECRET, CONFIG, NOW - CONFIG.period)
    assert not totp.verify(before, SECRET, CONFIG, NOW, window=0)
    assert totp.verify(totp.current_code(SECRET, CONFIG, NOW), SECRET, CONFIG, NOW, window=0)


def test_verify_is_repeatable():
    code = totp.current_code(SECRET, CONFIG, NOW)
    assert all(totp.verify(code, SECRET, CONFIG, NOW) for _ in range(3))


@pytest.mark.parametrize("candidate", ["", "12345", "1234567", "abcdef", "12 345", None, 123456])
def test_verify_rejects_malformed_candidates(candidate):
    assert totp.verify(candidate, SECRET, CONFIG, NOW) is False


def test_verify_trims_whitespace():
    code = totp.current_code(SECRET, CONFIG, NOW)
    assert totp.verify(f" {code}\n", SECRET, CONFIG, NOW)


@pytest.mark.parametrize("window", [-1, 11, True, 1.5])
def test_verify_window_is_bounded(window):
    with pytest.raises(InvalidWindow):
        totp.verify("123456", SECRET, CONFIG, NOW, window=window)


def test_verify_near_epoch_skips_negative_counters():
    code = totp.current_code(SECRET, CONFIG, 0)
    assert totp.verify(code, SECRET, CONFIG, 5, window=1)


def test_code_snapshot():
    state = totp.code_snapshot(SECRET, CONFIG, NOW, account_id="acct-1")
    assert state.account_id == "acct-1"
    assert state.current_code == totp.current_code(SECRET, CONFIG, NOW)
    assert state.seconds_remaining == totp.seconds_remaining(NOW, 30)
    assert state.counter == totp.counter_for(NOW, 30)
    assert state.period == 30


def test_current_code_uses_wall_clock(monkeypatch):
    monkeypatch.setattr("otpvault.totp._time.time", lambda: 59.0)
    assert totp.current_code(SEEDS[Algorithm.SHA1], TotpConfig(digits=8)) == "94287082"


def test_preview_codes():
    preview = totp.preview_codes(SEEDS[Algorithm.SHA1], 59)
    assert preview["default"] == "287082"
    assert len(preview["secure"]) == 8
    assert preview["time_remaining"] == 1

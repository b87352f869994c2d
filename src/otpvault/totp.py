"""TOTP (RFC 6238) engine: time counters, current codes and verification.

Every function is a pure function of its inputs. ``time`` defaults to the wall
clock but callers can always pass ``now`` explicitly.
"""

from __future__ import annotations

import time as _time

from pyotp.utils import strings_equal

from otpvault import hotp
from otpvault.config import MAX_VERIFY_WINDOW
from otpvault.errors import InvalidWindow
from otpvault.models import AccountCodeState, Algorithm, TotpConfig, validate_period

DEFAULT_PROFILE = TotpConfig()
SECURE_PROFILE = TotpConfig(digits=8, period=30, algorithm=Algorithm.SHA256)


def _now(time: float | None) -> int:
    return int(_time.time() if time is None else time)


def counter_for(time: float, period: int) -> int:
    """Time-step counter: ``floor(time / period)``."""
    validate_period(period)
    return int(time // period)


def seconds_remaining(time: float, period: int) -> int:
    """Seconds until the next counter boundary, in ``[1, period]``."""
    validate_period(period)
    return period - int(time) % period


def current_code(secret: bytes, config: TotpConfig, time: float | None = None) -> str:
    """Code for the counter that ``time`` falls in."""
    return hotp.compute(secret, counter_for(_now(time), config.period), config.digits, config.algorithm)


def code_snapshot(
    secret: bytes, config: TotpConfig, time: float | None = None, account_id: str = ""
) -> AccountCodeState:
    """Current code plus its countdown, as a single consistent reading."""
    now = _now(time)
    counter = counter_for(now, config.period)
    return AccountCodeState(
        account_id=account_id,
        current_code=hotp.compute(secret, counter, config.digits, config.algorithm),
        seconds_remaining=seconds_remaining(now, config.period),
        counter=counter,
        period=config.period,
    )


def preview_codes(secret: bytes, time: float | None = None) -> dict[str, str | int]:
    """Codes for the default (6/30/SHA1) and secure (8/30/SHA256) profiles."""
    now = _now(time)
    return {
        "default": current_code(secret, DEFAULT_PROFILE, now),
        "secure": current_code(secret, SECURE_PROFILE, now),
        "time_remaining": seconds_remaining(now, DEFAULT_PROFILE.period),
    }


def verify(
    candidate: str,
    secret: bytes,
    config: TotpConfig,
    time: float | None = None,
    window: int = 1,
) -> bool:
    """Check ``candidate`` against the counters within ``window`` steps of now.

    Every offset in ``[-window, window]`` is computed and compared in constant
    time; a match does not end the loop early. A code may be accepted more
    than once while its window is open.
    """
    if isinstance(window, bool) or not isinstance(window, int) or not 0 <= window <= MAX_VERIFY_WINDOW:
        raise InvalidWindow(f"window must be between 0 and {MAX_VERIFY_WINDOW}, got {window!r}")
    if not isinstance(candidate, str):
        return False
    candidate = candidate.strip()
    if len(candidate) != config.digits or not (candidate.isascii() and candidate.isdigit()):
        return False

    base = counter_for(_now(time), config.period)
    matched = False
    for offset in range(-window, window + 1):
        counter = base + offset
        if counter < 0:
            continue
        expected = hotp.compute(secret, counter, config.digits, config.algorithm)
        matched |= strings_equal(candidate, expected)
    return matched

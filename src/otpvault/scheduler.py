"""Per-account code refresh scheduler.

Each tracked account carries its own next-due time, derived from its own
period, so a 60 s account refreshes half as often as a 30 s one:

  AWAITING_BOUNDARY --(now >= next_due)--> REFRESHED --(next tick)--> AWAITING_BOUNDARY

``tick(now)`` can be driven by the caller (tests, request handlers) or by the
background thread started with ``start()``. Both paths go through the same
lock, so overlapping ticks never race on the due-time mapping.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from otpvault import totp
from otpvault.errors import OtpVaultError
from otpvault.models import AccountCodeState, RefreshPhase, TotpConfig

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[list[AccountCodeState]], None]


@dataclass
class TrackedAccount:
    """Scheduler state for one account."""

    account_id: str
    secret: bytes
    config: TotpConfig
    next_due: float
    phase: RefreshPhase = RefreshPhase.AWAITING_BOUNDARY
    state: AccountCodeState | None = None
    refresh_count: int = 0
    error: str | None = None


class RefreshScheduler:
    """Recomputes each account's code at its own period boundary."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._accounts: dict[str, TrackedAccount] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # --- tracking ---

    def track(self, account_id: str, secret: bytes, config: TotpConfig, now: float | None = None) -> None:
        """Start tracking an account. Its first refresh is due immediately."""
        if not secret:
            raise ValueError("secret must not be empty")
        now = self._clock() if now is None else now
        with self._lock:
            self._accounts[account_id] = TrackedAccount(
                account_id=account_id, secret=secret, config=config, next_due=now,
            )
        logger.debug("Tracking %s (period %ds)", account_id, config.period)

    def untrack(self, account_id: str) -> bool:
        with self._lock:
            return self._accounts.pop(account_id, None) is not None

    def tracked(self) -> list[str]:
        with self._lock:
            return list(self._accounts)

    # --- ticking ---

    def tick(self, now: float | None = None) -> list[AccountCodeState]:
        """Refresh every account whose boundary has passed; return the new states."""
        now = self._clock() if now is None else now
        updated: list[AccountCodeState] = []
        with self._lock:
            for acct in self._accounts.values():
                if now < acct.next_due:
                    acct.phase = RefreshPhase.AWAITING_BOUNDARY
                    continue
                period = acct.config.period
                acct.next_due = (totp.counter_for(now, period) + 1) * period
                try:
                    state = totp.code_snapshot(acct.secret, acct.config, now, account_id=acct.account_id)
                except (OtpVaultError, ValueError) as exc:
                    # Scoped to this account; the rest still refresh.
                    acct.error = f"{type(exc).__name__}: {exc}"
                    logger.warning("Refresh failed for %s: %s", acct.account_id, type(exc).__name__)
                    continue
                acct.state = state
                acct.phase = RefreshPhase.REFRESHED
                acct.refresh_count += 1
                acct.error = None
                updated.append(state)
        return updated

    def seconds_until_next(self, account_id: str, now: float | None = None) -> int:
        """Whole seconds until the account's next refresh (0 if already due)."""
        now = self._clock() if now is None else now
        with self._lock:
            acct = self._accounts[account_id]
            return max(0, math.ceil(acct.next_due - now))

    def state(self, account_id: str) -> AccountCodeState | None:
        with self._lock:
            return self._accounts[account_id].state

    def phase(self, account_id: str) -> RefreshPhase:
        with self._lock:
            return self._accounts[account_id].phase

    # --- background loop ---

    def start(self, on_refresh: RefreshCallback, interval: float = 1.0) -> None:
        """Run ``tick`` every ``interval`` seconds on a daemon thread."""
        if self.is_running:
            logger.warning("Refresh scheduler already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(on_refresh, interval),
            name="otpvault-refresh",
            daemon=True,
        )
        self._thread.start()
        logger.info("Refresh scheduler started (%d accounts)", len(self.tracked()))

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the background loop and wait for it to exit."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Refresh scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def status(self) -> dict[str, Any]:
        """Scheduler status for display."""
        now = self._clock()
        with self._lock:
            accounts = {
                acct.account_id: {
                    "period": acct.config.period,
                    "phase": str(acct.phase),
                    "next_due": acct.next_due,
                    "seconds_until_next": max(0, math.ceil(acct.next_due - now)),
                    "refresh_count": acct.refresh_count,
                    "error": acct.error,
                }
                for acct in self._accounts.values()
            }
        return {
            "running": self.is_running,
            "account_count": len(accounts),
            "accounts": accounts,
        }

    def _loop(self, on_refresh: RefreshCallback, interval: float) -> None:
        while not self._stop_event.is_set():
            try:
                updates = self.tick()
                if updates:
                    on_refresh(updates)
            except Exception:
                logger.error("Error in refresh loop", exc_info=True)
            self._stop_event.wait(interval)

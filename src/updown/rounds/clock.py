"""Round clock: pure functions of wall-clock time.

Rounds are never persisted; any party (server, client, worker) can
recompute them from a millisecond timestamp and the round duration.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

DEFAULT_ROUND_MS = 5 * 60 * 1000
DEFAULT_BET_LOCK_MS = 60 * 1000


@dataclass(frozen=True)
class Round:
    round_id: int
    start_ts: int
    end_ts: int

    @property
    def duration_ms(self) -> int:
        return self.end_ts - self.start_ts


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def round_for_id(round_id: int, duration_ms: int = DEFAULT_ROUND_MS) -> Round:
    start = round_id * duration_ms
    return Round(round_id=round_id, start_ts=start, end_ts=start + duration_ms)


def current_round(now: int, duration_ms: int = DEFAULT_ROUND_MS) -> Round:
    """Round containing ``now``: ``round_id = floor(now / duration)``."""
    if duration_ms <= 0:
        raise ValueError("duration_ms must be positive")
    return round_for_id(now // duration_ms, duration_ms)


def is_betting_locked(now: int, rnd: Round, lock_window_ms: int = DEFAULT_BET_LOCK_MS) -> bool:
    """True within the final ``lock_window_ms`` of the round."""
    return now - rnd.start_ts >= rnd.duration_ms - lock_window_ms


def has_ended(now: int, rnd: Round) -> bool:
    return now >= rnd.end_ts


def time_info(
    now: int,
    duration_ms: int = DEFAULT_ROUND_MS,
    lock_window_ms: int = DEFAULT_BET_LOCK_MS,
) -> dict[str, int | bool]:
    """Time-sync payload the client uses to compute its clock offset."""
    rnd = current_round(now, duration_ms)
    remaining = rnd.end_ts - now
    return {
        "now": now,
        "round_id": rnd.round_id,
        "round_ms": duration_ms,
        "round_start": rnd.start_ts,
        "round_end": rnd.end_ts,
        "ms_remaining": remaining,
        "ms_elapsed": duration_ms - remaining,
        "bet_lock_ms": lock_window_ms,
        "betting_open": not is_betting_locked(now, rnd, lock_window_ms),
    }

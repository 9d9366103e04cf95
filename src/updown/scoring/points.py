"""Point scoring formula.

    win:  +10, streak += 1, bonus min(20, streak * 2)
    loss: -6 - floor(streak / 2), streak reset to 0
    then delta = round(delta * multiplier(day_count))

The daily multiplier throttles high-frequency bettors: the first 20
resolved bets in a settlement batch score in full, each further bet loses
5% down to a floor of 50%.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

WIN_POINTS = 10
LOSS_POINTS = -6
STREAK_BONUS_PER_WIN = 2
STREAK_BONUS_CAP = 20
FULL_SCORE_BETS = 20
DECAY_PER_BET = 0.05
DECAY_FLOOR = 0.5


@dataclass
class StreakState:
    streak: int = 0
    best: int = 0


@dataclass(frozen=True)
class Outcome:
    win: bool
    delta: int
    streak: int
    best: int


def is_win(side: str, price_at_bet: float, settlement_price: float) -> bool:
    """UP wins when price held or rose; DOWN wins only on a strict fall."""
    if side == "UP":
        return settlement_price >= price_at_bet
    return settlement_price < price_at_bet


def daily_multiplier(day_count: int) -> float:
    if day_count <= FULL_SCORE_BETS:
        return 1.0
    return max(DECAY_FLOOR, 1 - (day_count - FULL_SCORE_BETS) * DECAY_PER_BET)


def round_half_up(value: float) -> int:
    """Round halves toward +infinity (-3.5 -> -3, 3.5 -> 4)."""
    return math.floor(value + 0.5)


def score_bet(win: bool, state: StreakState, day_count: int) -> Outcome:
    """Score one resolved bet and advance ``state`` in place."""
    if win:
        state.streak += 1
        state.best = max(state.best, state.streak)
        delta = WIN_POINTS + min(STREAK_BONUS_CAP, state.streak * STREAK_BONUS_PER_WIN)
    else:
        delta = LOSS_POINTS - state.streak // 2
        state.streak = 0

    delta = round_half_up(delta * daily_multiplier(day_count))
    return Outcome(win=win, delta=delta, streak=state.streak, best=state.best)

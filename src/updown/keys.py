"""Store key layout.

All wallet-scoped keys use the lowercased 0x address. The ``lb:`` prefix
matches the layout existing leaderboard data was written with.
"""

from __future__ import annotations

GLOBAL_RANKING = "lb:z:points"
SNAPSHOT_INDEX = "lb:snapshots:z"
OPEN_ROUNDS = "bets:rounds"


def wallet_key(wallet: str, field: str) -> str:
    """All-time per-wallet field, e.g. ``lb:0xabc:points``."""
    return f"lb:{wallet}:{field}"


def weekly_key(week_id: str, wallet: str, field: str) -> str:
    return f"lb:week:{week_id}:{wallet}:{field}"


def weekly_ranking(week_id: str) -> str:
    return f"lb:week:{week_id}:z:points"


def history_key(wallet: str) -> str:
    return f"lb:hist:{wallet}"


def snapshot_key(week_id: str) -> str:
    return f"lb:snapshot:{week_id}"


def bet_key(round_id: int, wallet: str, asset: str) -> str:
    return f"bet:{round_id}:{wallet}:{asset}"


def round_bets(round_id: int) -> str:
    """Placement-ordered index of bets in a round (member ``wallet:asset``)."""
    return f"bets:round:{round_id}"


def wallet_bets(wallet: str) -> str:
    """Index of a wallet's open bets (member ``round:asset``, score round)."""
    return f"bets:wallet:{wallet}"


def resolved_marker(round_id: int, wallet: str, asset: str) -> str:
    return f"lb:resolved:{round_id}:{wallet}:{asset}"

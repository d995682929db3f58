"""Staleness evaluation — OK/DOWN from last-success age, plus merge countdown."""

from __future__ import annotations

import logging

from .state import HealthRecord, HealthSnapshot, Status

logger = logging.getLogger(__name__)

STALE_AFTER_MS = 15_000

# Terminal total difficulty of the proof-of-work chain
TERMINAL_TOTAL_DIFFICULTY = 58_750_000_000_000_000_000_000

# Average seconds per proof-of-work block
_SECONDS_PER_BLOCK = 14


def evaluate_status(
    record: HealthRecord, now_ms: int, stale_after_ms: int = STALE_AFTER_MS,
) -> Status:
    """OK iff the last success is no older than ``stale_after_ms``."""
    if now_ms - record.last_seen_ms <= stale_after_ms:
        return Status.OK
    return Status.DOWN


def merge_countdown(
    difficulty: int,
    total_difficulty: int,
    target: int = TERMINAL_TOTAL_DIFFICULTY,
) -> int | None:
    """Minutes until ``target`` is reached at the current difficulty.

    Floor division throughout; once ``total_difficulty >= target`` the result
    is zero or negative. Post-merge blocks report difficulty 0 → None.
    """
    if difficulty == 0:
        return None
    blocks_remaining = (target - total_difficulty) // difficulty
    return blocks_remaining * _SECONDS_PER_BLOCK // 60


def refresh_statuses(
    snapshot: HealthSnapshot, now_ms: int, stale_after_ms: int = STALE_AFTER_MS,
) -> None:
    """Recompute every source's status and the derived merge countdown."""
    for name, record in snapshot.items():
        snapshot.set_status(name, evaluate_status(record, now_ms, stale_after_ms))

    block = snapshot.latest_block()
    if block is not None:
        snapshot.mins_to_merge = merge_countdown(block.difficulty, block.total_difficulty)

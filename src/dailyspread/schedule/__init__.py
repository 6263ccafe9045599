"""Slot assignment, window arithmetic and the per-feed fetch gate."""

from .gate import GateDecision, RefreshGate, wall_clock
from .slots import slot_for_feed, strip_credentials
from .window import NEVER_WINDOW, next_refresh_time, should_run_primary, window_index

__all__ = [
    "NEVER_WINDOW",
    "GateDecision",
    "RefreshGate",
    "next_refresh_time",
    "should_run_primary",
    "slot_for_feed",
    "strip_credentials",
    "wall_clock",
    "window_index",
]

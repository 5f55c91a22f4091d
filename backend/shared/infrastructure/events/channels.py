"""
Redis Channel Naming.

All order events for the venue share one channel; a branch-scoped channel
exists for stations that only follow one branch.
"""

from __future__ import annotations

from shared.config.settings import settings


def channel_orders() -> str:
    """Channel carrying every order event for the venue."""
    return settings.orders_channel


def channel_branch_orders(branch_id: str) -> str:
    """Channel for order events of a single branch."""
    if not branch_id or not isinstance(branch_id, str):
        raise ValueError(f"branch_id must be a non-empty string, got {branch_id!r}")
    return f"{settings.orders_channel}:branch:{branch_id}"

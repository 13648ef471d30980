"""
Cascade clock.

Tier activation is derived from stored timestamps: tier 1 opens at
``sent_to_primary_at`` and every later tier opens one window after the
previous tier opened. A tier whose activation was already recorded keeps its
recorded time, so an early activation (advance-on-decline) shifts the tiers
behind it. Nothing here writes to the database.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

# tier rank -> cascade timestamp field
SENT_AT_FIELDS = {
    1: "sent_to_primary_at",
    2: "sent_to_secondary_at",
    3: "sent_to_tertiary_at",
}

# highest open tier rank -> cascade state
TIER_STATES = {
    1: "tier1_active",
    2: "tier2_active",
    3: "tier3_active",
}


def window(cascade) -> timedelta:
    return timedelta(seconds=cascade.window_seconds)


def activation_schedule(cascade, tier_count: int) -> Dict[int, datetime]:
    """Return the activation time of every tier, recorded or scheduled."""
    schedule = {}
    previous = None
    for rank in range(1, tier_count + 1):
        recorded = getattr(cascade, SENT_AT_FIELDS[rank])
        if recorded is not None:
            schedule[rank] = recorded
        elif previous is not None:
            schedule[rank] = previous + window(cascade)
        else:
            # Primary not sent yet: nothing is scheduled
            break
        previous = schedule[rank]
    return schedule


def tier_activation_time(cascade, rank: int, tier_count: int) -> Optional[datetime]:
    return activation_schedule(cascade, tier_count).get(rank)


def is_tier_open(cascade, rank: int, tier_count: int, now: datetime) -> bool:
    """A tier, once opened, stays acceptable until the cascade closes."""
    opens_at = tier_activation_time(cascade, rank, tier_count)
    return opens_at is not None and now >= opens_at


def open_tiers(cascade, tier_count: int, now: datetime):
    return [
        rank for rank, opens_at in activation_schedule(cascade, tier_count).items()
        if now >= opens_at
    ]


def cascade_deadline(cascade, tier_count: int) -> Optional[datetime]:
    """The last tier's activation plus one window."""
    schedule = activation_schedule(cascade, tier_count)
    if len(schedule) < tier_count:
        return None
    return schedule[tier_count] + window(cascade)


def derive_state(cascade, tier_count: int, now: datetime) -> str:
    """Effective state at ``now`` for an open cascade; terminal states pass through."""
    if not cascade.is_open:
        return cascade.state
    opened = open_tiers(cascade, tier_count, now)
    if not opened:
        return cascade.state
    return TIER_STATES[max(opened)]


def seconds_until_window_closes(cascade, rank: int, tier_count: int, now: datetime) -> Optional[int]:
    """Seconds left in a tier's own exclusivity window (0 once it has passed)."""
    opens_at = tier_activation_time(cascade, rank, tier_count)
    if opens_at is None or now < opens_at:
        return None
    remaining = (opens_at + window(cascade)) - now
    return max(int(remaining.total_seconds()), 0)


def next_due_at(cascade, tier_count: int) -> Optional[datetime]:
    """When the next unrecorded activation (or the deadline) of an open cascade falls due."""
    if not cascade.is_open:
        return None
    schedule = activation_schedule(cascade, tier_count)
    for rank, opens_at in schedule.items():
        if getattr(cascade, SENT_AT_FIELDS[rank]) is None:
            return opens_at
    return cascade_deadline(cascade, tier_count)

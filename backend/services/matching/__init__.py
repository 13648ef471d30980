"""
Transporter matching and fee floor service.

This module handles:
    - Ranking available transporters for an order
    - Computing the minimum transport fee for an order
"""

from .fees import FeePolicy, calculate_minimum_fee, ensure_fee_meets_floor
from .scoring import (
    MatchContext,
    MatchReasons,
    MatchingPolicy,
    TransporterCandidate,
    TransporterSnapshot,
    rank_transporters,
)
from .transporter_matcher import MatchResult, match_transporters, order_minimum_fee

__all__ = [
    "FeePolicy",
    "calculate_minimum_fee",
    "ensure_fee_meets_floor",
    "MatchContext",
    "MatchReasons",
    "MatchingPolicy",
    "TransporterCandidate",
    "TransporterSnapshot",
    "rank_transporters",
    "MatchResult",
    "match_transporters",
    "order_minimum_fee",
]

"""
Safeguard-level scoring.

Combines one policy status and one implementation status into a single
0-1 score:

    score = policy_value * 0.4 + implementation_value * 0.6

Implementation carries more weight than policy because operational
deployment, not documented intent, is what reduces risk.

Rules:
    - Neither axis set, both N/A, or one N/A with the other empty: unscored (None)
    - One axis N/A and the other set: the other axis's value alone
    - Unknown status ids score as 0

All functions here are pure and deterministic.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Protocol

from postureiq.scoring.statuses import (
    IMPLEMENTATION_STATUSES,
    NOT_APPLICABLE,
    POLICY_STATUSES,
)

POLICY_WEIGHT = 0.4
IMPLEMENTATION_WEIGHT = 0.6

# Score band edges used for red/amber/green rendering
RED_BELOW = 0.3
AMBER_UP_TO = 0.6


class TieredLike(Protocol):
    """Anything carrying optional applicability tiers (e.g., a Safeguard)."""

    @property
    def applicability_tiers(self) -> Collection[int] | None: ...


def compute_safeguard_score(
    policy_id: str | None = None,
    implementation_id: str | None = None,
) -> float | None:
    """
    Compute the score for a single safeguard.

    Args:
        policy_id: Policy status id (see POLICY_STATUSES), or None/"" if unset.
        implementation_id: Implementation status id, or None/"" if unset.

    Returns:
        Score in [0, 1], or None if the safeguard is unscored.
    """
    if not policy_id and not implementation_id:
        return None
    if policy_id == NOT_APPLICABLE and implementation_id == NOT_APPLICABLE:
        return None
    if policy_id == NOT_APPLICABLE and not implementation_id:
        return None
    if not policy_id and implementation_id == NOT_APPLICABLE:
        return None

    policy_value = POLICY_STATUSES.value_of(policy_id) or 0.0
    implementation_value = IMPLEMENTATION_STATUSES.value_of(implementation_id) or 0.0

    # One axis N/A: the other axis stands alone
    if policy_id == NOT_APPLICABLE:
        return implementation_value
    if implementation_id == NOT_APPLICABLE:
        return policy_value

    return policy_value * POLICY_WEIGHT + implementation_value * IMPLEMENTATION_WEIGHT


def is_not_applicable(policy_id: str | None, implementation_id: str | None) -> bool:
    """True if either axis is marked N/A."""
    return policy_id == NOT_APPLICABLE or implementation_id == NOT_APPLICABLE


def is_in_tier(safeguard: TieredLike, tier_filter: int | None) -> bool:
    """
    Check whether a safeguard is in scope for a tier filter.

    A safeguard without applicability tiers is always in scope. Otherwise it
    is in scope when its lowest tier does not exceed the filter.

    Args:
        safeguard: Object with an ``applicability_tiers`` attribute.
        tier_filter: Tier cutoff, or None for no filtering.

    Returns:
        True if the safeguard should be included.
    """
    if tier_filter is None:
        return True
    tiers = safeguard.applicability_tiers
    if not tiers:
        return True
    return min(tiers) <= tier_filter


def score_band(score: float | None) -> str:
    """
    Classify a safeguard score into a display band.

    Returns:
        "unscored", "red", "amber", or "green".
    """
    if score is None:
        return "unscored"
    if score < RED_BELOW:
        return "red"
    if score <= AMBER_UP_TO:
        return "amber"
    return "green"

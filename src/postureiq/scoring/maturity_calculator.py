"""
Maturity scoring calculator.

Turns per-safeguard assessments into maturity levels (0-5) for control
groups and whole frameworks. All scoring is deterministic and auditable.

Maturity Levels (CMMI-inspired):
    - Level 0: Not Addressed (score <= 0.10)
    - Level 1: Initial (score <= 0.30)
    - Level 2: Repeatable (score <= 0.55)
    - Level 3: Defined (score <= 0.75)
    - Level 4: Managed (score <= 0.90)
    - Level 5: Optimizing (score > 0.90)

Scoring Algorithm:
    1. Each safeguard is scored from its policy/implementation pair
    2. A group score is the mean of its scored safeguards (N/A excluded)
    3. A group maturity is the tier classification of its score
    4. The framework score is the mean over groups with at least one
       assessed safeguard; unassessed groups are unknown, not failing

A group score of 0 is ambiguous on its own: always read it together with
assessed_count.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from postureiq.scoring.safeguard_scorer import (
    TieredLike,
    compute_safeguard_score,
    is_in_tier,
    is_not_applicable,
)

logger = logging.getLogger(__name__)

# (inclusive upper bound, level); anything above the last bound is level 5
MATURITY_THRESHOLDS: tuple[tuple[float, int], ...] = (
    (0.10, 0),
    (0.30, 1),
    (0.55, 2),
    (0.75, 3),
    (0.90, 4),
)
TOP_MATURITY = 5

# Changes smaller than this are reported as "unchanged"
DELTA_DEAD_BAND = 0.01


class SafeguardLike(TieredLike, Protocol):
    """Anything with a safeguard id and optional applicability tiers."""

    @property
    def id(self) -> str: ...


class GroupLike(Protocol):
    """Anything with a group id and a sequence of safeguards."""

    @property
    def id(self) -> str: ...
    @property
    def safeguards(self) -> Sequence[SafeguardLike]: ...


@dataclass(frozen=True)
class GroupScore:
    """
    Aggregate score for one group of safeguards.

    Attributes:
        score: Mean of scored safeguards (0.0 - 1.0), 0.0 if none scored.
        assessed_count: Safeguards with a non-null score.
        total_applicable: In-scope safeguards minus exclusions (completion denominator).
        excluded_count: Safeguards excluded by tier filter or N/A.
    """

    score: float
    assessed_count: int
    total_applicable: int
    excluded_count: int


@dataclass(frozen=True)
class GroupResult:
    """
    Safeguard-derived result for one control group.

    Attributes:
        group_id: Control group identifier.
        score: Group score (0.0 - 1.0).
        assessed_count: Safeguards with a non-null score.
        total_applicable: Completion denominator.
        excluded_count: Safeguards excluded by tier filter or N/A.
        maturity: Tier classification of the score (0-5).
    """

    group_id: str
    score: float
    assessed_count: int
    total_applicable: int
    excluded_count: int
    maturity: int

    @property
    def is_assessed(self) -> bool:
        """True if at least one safeguard in the group has been scored."""
        return self.assessed_count > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "group_id": self.group_id,
            "score": round(self.score, 4),
            "assessed_count": self.assessed_count,
            "total_applicable": self.total_applicable,
            "excluded_count": self.excluded_count,
            "maturity": self.maturity,
        }


@dataclass(frozen=True)
class OverallResult:
    """
    Framework-wide result.

    Attributes:
        score: Mean score over groups with assessed safeguards.
        maturity: Tier classification of the overall score.
        assessed_count: Sum of assessed safeguards across all groups.
        total_safeguards: Sum of applicable safeguards across all groups.
    """

    score: float
    maturity: int
    assessed_count: int
    total_safeguards: int

    @property
    def completion(self) -> float:
        """Fraction of applicable safeguards assessed (0.0 - 1.0)."""
        if self.total_safeguards == 0:
            return 0.0
        return self.assessed_count / self.total_safeguards

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": round(self.score, 4),
            "maturity": self.maturity,
            "assessed_count": self.assessed_count,
            "total_safeguards": self.total_safeguards,
            "completion": round(self.completion, 4),
        }


@dataclass(frozen=True)
class FrameworkResult:
    """Per-group results plus the overall framework result."""

    groups: tuple[GroupResult, ...]
    overall: OverallResult
    _index: dict[str, GroupResult] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {g.group_id: g for g in self.groups})

    def get_group(self, group_id: str) -> GroupResult | None:
        """Get the result for a group by id."""
        return self._index.get(group_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "groups": [g.to_dict() for g in self.groups],
            "overall": self.overall.to_dict(),
        }


def get_axis_values(record: Any) -> tuple[str | None, str | None]:
    """Extract (policy, implementation) ids from an assessment record."""
    if isinstance(record, Mapping):
        policy = implementation = None
        for key in ("policy", "policy_status_id", "policyStatusId"):
            if key in record:
                policy = record[key]
                break
        for key in ("implementation", "implementation_status_id", "implementationStatusId"):
            if key in record:
                implementation = record[key]
                break
        return policy, implementation
    return getattr(record, "policy", None), getattr(record, "implementation", None)


def score_to_maturity(score: float) -> int:
    """
    Convert a 0-1 score to a maturity level.

    Each band is inclusive on its upper edge, so 0.10 is level 0 and 0.90
    is level 4. Out-of-range input is clamped; NaN is treated as 0.

    Args:
        score: Aggregate score (0.0 - 1.0).

    Returns:
        Maturity level (0-5).
    """
    if math.isnan(score):
        return 0
    for upper, level in MATURITY_THRESHOLDS:
        if score <= upper:
            return level
    return TOP_MATURITY


def aggregate_group(
    safeguards: Sequence[SafeguardLike],
    assessments_by_id: Mapping[str, Any] | None = None,
    tier_filter: int | None = None,
) -> GroupScore:
    """
    Fold a group's safeguard assessments into a group score.

    Args:
        safeguards: Safeguards in the group.
        assessments_by_id: Assessment records by safeguard id. Records may be
            SafeguardAssessment objects or mappings with ``policy`` and
            ``implementation`` keys.
        tier_filter: Optional tier cutoff.

    Returns:
        GroupScore with score and counts.
    """
    assessments_by_id = assessments_by_id or {}
    scored: list[float] = []
    excluded = 0

    for safeguard in safeguards:
        if not is_in_tier(safeguard, tier_filter):
            excluded += 1
            continue

        record = assessments_by_id.get(safeguard.id)
        if record is None:
            continue

        policy, implementation = get_axis_values(record)
        score = compute_safeguard_score(policy, implementation)
        if score is not None:
            scored.append(score)
        elif is_not_applicable(policy, implementation):
            excluded += 1

    avg_score = sum(scored) / len(scored) if scored else 0.0

    return GroupScore(
        score=avg_score,
        assessed_count=len(scored),
        total_applicable=len(safeguards) - excluded,
        excluded_count=excluded,
    )


def aggregate_framework(
    groups: Sequence[GroupLike],
    assessments_by_id: Mapping[str, Any] | None = None,
    tier_filter: int | None = None,
) -> FrameworkResult:
    """
    Aggregate every group in a framework and compute the overall result.

    The overall score averages only groups with at least one assessed
    safeguard. The overall counts are plain sums across all groups.

    Args:
        groups: Control groups (anything with ``id`` and ``safeguards``).
        assessments_by_id: Assessment records by safeguard id.
        tier_filter: Optional tier cutoff.

    Returns:
        FrameworkResult.
    """
    results: list[GroupResult] = []
    for group in groups:
        group_score = aggregate_group(group.safeguards, assessments_by_id, tier_filter)
        result = GroupResult(
            group_id=group.id,
            score=group_score.score,
            assessed_count=group_score.assessed_count,
            total_applicable=group_score.total_applicable,
            excluded_count=group_score.excluded_count,
            maturity=score_to_maturity(group_score.score),
        )
        results.append(result)
        logger.debug(
            "Group %s: score=%.3f assessed=%d/%d excluded=%d level=%d",
            group.id,
            result.score,
            result.assessed_count,
            result.total_applicable,
            result.excluded_count,
            result.maturity,
        )

    scored_groups = [r for r in results if r.is_assessed]
    overall_score = (
        sum(r.score for r in scored_groups) / len(scored_groups)
        if scored_groups
        else 0.0
    )

    overall = OverallResult(
        score=overall_score,
        maturity=score_to_maturity(overall_score),
        assessed_count=sum(r.assessed_count for r in results),
        total_safeguards=sum(r.total_applicable for r in results),
    )
    return FrameworkResult(groups=tuple(results), overall=overall)


def compare_results(
    current: FrameworkResult,
    previous: FrameworkResult,
) -> dict[str, Any]:
    """
    Compare two framework results for trend analysis.

    Args:
        current: Current framework result.
        previous: Previous framework result.

    Returns:
        Dictionary with overall delta, direction, and per-group changes.
    """
    overall_delta = current.overall.score - previous.overall.score

    group_deltas: dict[str, float] = {}
    maturity_changes: dict[str, dict[str, int]] = {}
    improved = 0
    regressed = 0
    unchanged = 0

    for group in current.groups:
        prior = previous.get_group(group.group_id)
        if prior is None:
            continue
        delta = group.score - prior.score
        group_deltas[group.group_id] = round(delta, 4)
        if group.maturity != prior.maturity:
            maturity_changes[group.group_id] = {
                "from": prior.maturity,
                "to": group.maturity,
            }
        if delta > DELTA_DEAD_BAND:
            improved += 1
        elif delta < -DELTA_DEAD_BAND:
            regressed += 1
        else:
            unchanged += 1

    return {
        "overall_delta": round(overall_delta, 4),
        "overall_direction": (
            "improved" if overall_delta > DELTA_DEAD_BAND
            else "regressed" if overall_delta < -DELTA_DEAD_BAND
            else "unchanged"
        ),
        "assessed_delta": current.overall.assessed_count - previous.overall.assessed_count,
        "group_deltas": group_deltas,
        "maturity_changes": maturity_changes,
        "groups_improved": improved,
        "groups_regressed": regressed,
        "groups_unchanged": unchanged,
    }

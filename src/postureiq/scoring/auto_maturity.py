"""
Conservative auto-maturity estimation from inventory metadata.

Used as a fallback when a group has no safeguard-level data. The estimate
is capped at Level 2 because inventory metadata alone cannot show
enterprise-wide, standardized, continuously measured practice; Levels 3-5
need safeguard assessments or a manual override.

    - Level 0: no objects mapped to the group
    - Level 1: objects exist, but controls are informal or unmeasured
    - Level 2: a formally classified object exists AND compliance is tracked
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

AUTO_MATURITY_CAP = 2


class InventoryLike(Protocol):
    """The object attributes the estimator reads."""

    @property
    def is_formally_classified(self) -> bool: ...
    @property
    def compliance_percent(self) -> float | None: ...
    @property
    def has_measured_compliance(self) -> bool: ...


def _tracks_compliance(obj: InventoryLike, count_zero_compliance: bool) -> bool:
    if obj.has_measured_compliance:
        return True
    # Only the percentage path is affected by count_zero_compliance
    compliance = obj.compliance_percent
    if compliance is None:
        return False
    if count_zero_compliance:
        return compliance >= 0
    return compliance > 0


def derive_auto_maturity(
    mapped_objects: Sequence[InventoryLike],
    count_zero_compliance: bool = False,
) -> int:
    """
    Derive a capped maturity estimate for a group from its mapped objects.

    The formal-classification and compliance conditions may be met by
    different objects.

    Args:
        mapped_objects: Inventory objects mapped to the group.
        count_zero_compliance: Treat a recorded compliance of exactly 0 as
            evidence that tracking exists. Off by default: only a non-zero
            figure counts.

    Returns:
        Maturity level 0, 1, or 2.
    """
    if not mapped_objects:
        return 0

    has_formal = any(obj.is_formally_classified for obj in mapped_objects)
    has_tracking = any(
        _tracks_compliance(obj, count_zero_compliance) for obj in mapped_objects
    )

    if has_formal and has_tracking:
        return AUTO_MATURITY_CAP

    return 1

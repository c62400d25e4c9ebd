"""
Effective maturity resolution.

Three signals can describe a group's maturity. Precedence, strictly:

    1. A manual override, if present
    2. The safeguard-derived maturity, if the group has assessed safeguards
    3. The conservative auto-maturity estimate

Override levels are clamped into 0-5 so an out-of-range value never
reaches a report.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from postureiq.scoring.maturity_calculator import GroupResult
from postureiq.scoring.statuses import MAX_MATURITY, MIN_MATURITY


class MaturitySource(str, Enum):
    """Which signal produced a group's effective maturity."""

    OVERRIDE = "override"
    SAFEGUARDS = "safeguards"
    AUTO = "auto"


def clamp_level(value: float) -> int:
    """
    Round a maturity value half-up and clamp it into 0-5.

    NaN clamps to 0.
    """
    if math.isnan(value):
        return MIN_MATURITY
    return max(MIN_MATURITY, min(MAX_MATURITY, math.floor(value + 0.5)))


@dataclass(frozen=True)
class Override:
    """
    A manual maturity override for one group.

    Attributes:
        group_id: Control group identifier.
        level: Override level (0-5 expected; clamped when resolved), or None
            when the record carries no level.
        note: Optional justification.
        timestamp: When the override was set.
    """

    group_id: str
    level: float | None
    note: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def effective_level(self) -> int:
        """The override level clamped into 0-5 (0 when no level is set)."""
        if self.level is None:
            return MIN_MATURITY
        return clamp_level(self.level)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], group_id: str | None = None) -> Override:
        """Create from dictionary."""
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        elif isinstance(timestamp, datetime):
            parsed = timestamp
        else:
            parsed = datetime.now(UTC)
        return cls(
            group_id=str(group_id if group_id is not None else data["group_id"]),
            level=data.get("level"),
            note=str(data.get("note") or ""),
            timestamp=parsed,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "group_id": self.group_id,
            "level": self.level,
            "note": self.note,
            "timestamp": self.timestamp.isoformat(),
        }


def resolve_maturity(
    group_result: GroupResult | None,
    auto_maturity: int,
    override: Override | None = None,
) -> tuple[int, MaturitySource]:
    """
    Resolve a group's effective maturity and the signal it came from.

    Args:
        group_result: Safeguard-derived result, or None if the framework has
            no safeguard data for the group.
        auto_maturity: Conservative auto estimate (0-2).
        override: Manual override, if any.

    Returns:
        Tuple of (effective maturity 0-5, source).
    """
    if override is not None and override.level is not None:
        return override.effective_level, MaturitySource.OVERRIDE
    if group_result is not None and group_result.assessed_count > 0:
        return group_result.maturity, MaturitySource.SAFEGUARDS
    return clamp_level(auto_maturity), MaturitySource.AUTO


def effective_maturity(
    group_result: GroupResult | None,
    auto_maturity: int,
    override: Override | None = None,
) -> int:
    """
    Get a group's effective maturity.

    See resolve_maturity for the precedence rules.
    """
    level, _ = resolve_maturity(group_result, auto_maturity, override)
    return level

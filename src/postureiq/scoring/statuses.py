"""
Status vocabularies for dual-axis safeguard assessment.

Every safeguard is assessed on two independent axes:
    - Policy: how well the governing rule is documented and approved
    - Implementation: how widely the control is actually deployed

Each axis is a closed, ordered vocabulary. Ranked members carry a weight in
[0, 1] that increases strictly from "none" to "fully realized". Exactly one
member per vocabulary is the "not applicable" sentinel, whose value is None:
N/A excludes the axis from scoring, it is never treated as zero.

Maturity Levels (CMMI-inspired):
    - Level 0: Not Addressed
    - Level 1: Initial
    - Level 2: Repeatable
    - Level 3: Defined
    - Level 4: Managed
    - Level 5: Optimizing
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

NOT_APPLICABLE = "na"

MIN_MATURITY = 0
MAX_MATURITY = 5


@dataclass(frozen=True)
class StatusDefinition:
    """
    A single member of a status vocabulary.

    Attributes:
        id: Stable identifier stored in assessment records.
        label: Human-readable label.
        value: Weight in [0, 1], or None for "not applicable".
    """

    id: str
    label: str
    value: float | None

    @property
    def is_not_applicable(self) -> bool:
        """True for the N/A sentinel member."""
        return self.value is None

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary."""
        return {"id": self.id, "label": self.label, "value": self.value}


class StatusVocabulary:
    """
    An ordered, closed set of status definitions for one assessment axis.

    Lookups by id are O(1). Unknown ids resolve to a value of 0.0 so that
    unrecognized input can never inflate a score.
    """

    def __init__(self, name: str, statuses: tuple[StatusDefinition, ...]) -> None:
        self.name = name
        self.statuses = statuses
        self._index = {s.id: s for s in statuses}

    def __iter__(self) -> Iterator[StatusDefinition]:
        return iter(self.statuses)

    def __len__(self) -> int:
        return len(self.statuses)

    def __contains__(self, status_id: object) -> bool:
        return status_id in self._index

    def get(self, status_id: str | None) -> StatusDefinition | None:
        """Get a status definition by id."""
        if not status_id:
            return None
        return self._index.get(status_id)

    def value_of(self, status_id: str | None) -> float | None:
        """
        Get the numeric weight for a status id.

        Args:
            status_id: Status identifier.

        Returns:
            The weight, None for the N/A member, and 0.0 for unknown ids.
        """
        status = self.get(status_id)
        if status is None:
            return 0.0
        return status.value

    def ids(self) -> list[str]:
        """Get all status ids in rank order (N/A last)."""
        return [s.id for s in self.statuses]

    def ranked(self) -> list[StatusDefinition]:
        """Get the ranked (non-N/A) members in order."""
        return [s for s in self.statuses if not s.is_not_applicable]

    def validate(self) -> None:
        """
        Check the vocabulary invariants.

        Raises:
            ValueError: If there is not exactly one N/A member, a value falls
                outside [0, 1], ids repeat, or ranked values do not strictly
                increase.
        """
        if len(self._index) != len(self.statuses):
            raise ValueError(f"{self.name}: duplicate status ids")

        na_members = [s for s in self.statuses if s.is_not_applicable]
        if len(na_members) != 1:
            raise ValueError(
                f"{self.name}: expected exactly one N/A member, found {len(na_members)}"
            )

        previous: float | None = None
        for status in self.ranked():
            value = status.value if status.value is not None else 0.0
            if not 0.0 <= value <= 1.0:
                raise ValueError(
                    f"{self.name}: value for {status.id!r} out of range: {value}"
                )
            if previous is not None and value <= previous:
                raise ValueError(
                    f"{self.name}: values must strictly increase ({status.id!r})"
                )
            previous = value

    def to_list(self) -> list[dict[str, object]]:
        """Convert to a list of dictionaries."""
        return [s.to_dict() for s in self.statuses]


POLICY_STATUSES = StatusVocabulary(
    "policy",
    (
        StatusDefinition("no_policy", "No Policy", 0.0),
        StatusDefinition("undocumented", "Undocumented", 0.17),
        StatusDefinition("partial", "Partial", 0.33),
        StatusDefinition("fully_documented", "Fully Documented", 0.67),
        StatusDefinition("approved_documented", "Approved", 1.0),
        StatusDefinition(NOT_APPLICABLE, "N/A", None),
    ),
)

IMPLEMENTATION_STATUSES = StatusVocabulary(
    "implementation",
    (
        StatusDefinition("not_implemented", "Not Implemented", 0.0),
        StatusDefinition("parts", "Parts", 0.17),
        StatusDefinition("some_systems", "Some Systems", 0.33),
        StatusDefinition("most_systems", "Most Systems", 0.67),
        StatusDefinition("all_systems", "All Systems", 1.0),
        StatusDefinition(NOT_APPLICABLE, "N/A", None),
    ),
)

POLICY_STATUSES.validate()
IMPLEMENTATION_STATUSES.validate()


MATURITY_LEVELS: dict[int, str] = {
    0: "Not Addressed",
    1: "Initial",
    2: "Repeatable",
    3: "Defined",
    4: "Managed",
    5: "Optimizing",
}


def get_maturity_label(level: float) -> str:
    """
    Get the label for a maturity level.

    Fractional levels are rounded half-up and out-of-range levels are
    clamped, so averaged rollups can be labelled directly.

    Args:
        level: Maturity level (0-5, may be fractional).

    Returns:
        Maturity label (e.g., "Repeatable").
    """
    rounded = int(level + 0.5) if level >= 0 else 0
    return MATURITY_LEVELS[max(MIN_MATURITY, min(MAX_MATURITY, rounded))]

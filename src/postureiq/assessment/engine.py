"""
Posture assessment engine.

Composes the scoring pieces into one pass over a framework:

    1. Inventory objects are mapped to control groups (InventoryMapper)
    2. Each group gets a conservative auto-maturity estimate from its objects
    3. Safeguard assessments are scored and aggregated per group
    4. Group and framework scores are classified into maturity levels
    5. Each group's effective maturity is resolved (override > safeguards > auto)

The engine is stateless apart from the catalog and crosswalk it was built
with, so one engine per framework can be shared freely. Inputs are never
mutated.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from postureiq.frameworks.catalog import FrameworkCatalog
from postureiq.frameworks.mapping_engine import Crosswalk, InventoryMapper, InventoryObject
from postureiq.scoring.auto_maturity import derive_auto_maturity
from postureiq.scoring.maturity_calculator import (
    FrameworkResult,
    GroupResult,
    aggregate_framework,
)
from postureiq.scoring.override_resolver import MaturitySource, Override, clamp_level, resolve_maturity
from postureiq.scoring.statuses import get_maturity_label

logger = logging.getLogger(__name__)


def round_half_up(value: float, places: int = 1) -> float:
    """Round half away from zero for non-negative values (2.25 -> 2.3)."""
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


def _mean_level(levels: list[int]) -> float:
    if not levels:
        return 0.0
    return round_half_up(sum(levels) / len(levels))


@dataclass(frozen=True)
class GroupAssessment:
    """
    Complete assessment of one control group.

    Attributes:
        group_id: Control group identifier.
        name: Group display name.
        section_id: Containing section, if the framework has sections.
        result: Safeguard-derived result.
        auto_maturity: Conservative estimate from inventory objects (0-2).
        override: Manual override, if any.
        effective_maturity: Resolved maturity (0-5).
        source: Which signal produced effective_maturity.
        mapped_objects: Inventory objects mapped to the group.
    """

    group_id: str
    name: str
    section_id: str | None
    result: GroupResult
    auto_maturity: int
    override: Override | None
    effective_maturity: int
    source: MaturitySource
    mapped_objects: tuple[InventoryObject, ...] = ()

    @property
    def is_blind_spot(self) -> bool:
        """True if no inventory object maps to this group."""
        return not self.mapped_objects

    @property
    def maturity_label(self) -> str:
        """Label for the effective maturity."""
        return get_maturity_label(self.effective_maturity)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "group_id": self.group_id,
            "name": self.name,
            "section_id": self.section_id,
            "effective_maturity": self.effective_maturity,
            "maturity_label": self.maturity_label,
            "source": self.source.value,
            "auto_maturity": self.auto_maturity,
            "safeguards": self.result.to_dict(),
            "override": self.override.to_dict() if self.override else None,
            "mapped_objects": [
                {"id": obj.id, "name": obj.name} for obj in self.mapped_objects
            ],
        }


@dataclass(frozen=True)
class SectionRollup:
    """
    Effective maturity rolled up over one section's groups.

    Attributes:
        section_id: Section identifier.
        name: Section display name.
        group_ids: Member group ids in catalog order.
        score: Mean effective maturity of member groups, one decimal.
        level: score rounded to a whole maturity level.
    """

    section_id: str
    name: str
    group_ids: tuple[str, ...]
    score: float
    level: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "section_id": self.section_id,
            "name": self.name,
            "group_ids": list(self.group_ids),
            "score": self.score,
            "level": self.level,
            "maturity_label": get_maturity_label(self.level),
        }


@dataclass(frozen=True)
class FrameworkAssessment:
    """
    Complete assessment of one framework.

    ``result`` carries the safeguard-derived scores, where the overall score
    only averages assessed groups. ``effective_score`` is the mean of every
    group's effective maturity, so auto estimates and overrides count there.

    Attributes:
        framework_id: Framework identifier.
        framework_name: Framework display name.
        timestamp: When the assessment ran.
        tier_filter: Tier cutoff applied, if any.
        result: Safeguard-derived framework result.
        groups: Per-group assessments in catalog order.
        sections: Per-section rollups (empty for flat frameworks).
        unmapped_objects: Objects that mapped to no group.
    """

    framework_id: str
    framework_name: str
    timestamp: datetime
    tier_filter: int | None
    result: FrameworkResult
    groups: tuple[GroupAssessment, ...]
    sections: tuple[SectionRollup, ...] = ()
    unmapped_objects: tuple[InventoryObject, ...] = ()
    _index: dict[str, GroupAssessment] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {g.group_id: g for g in self.groups})

    @property
    def effective_score(self) -> float:
        """Mean effective maturity across all groups, rounded to one decimal."""
        return _mean_level([g.effective_maturity for g in self.groups])

    @property
    def effective_level(self) -> int:
        """Effective score rounded to a whole maturity level."""
        return clamp_level(self.effective_score)

    @property
    def blind_spots(self) -> list[GroupAssessment]:
        """Groups with no mapped inventory objects."""
        return [g for g in self.groups if g.is_blind_spot]

    def get_group(self, group_id: str) -> GroupAssessment | None:
        """Get a group assessment by id."""
        return self._index.get(group_id)

    @property
    def statistics(self) -> dict[str, Any]:
        """Summary counts for reporting."""
        by_source = {source.value: 0 for source in MaturitySource}
        for group in self.groups:
            by_source[group.source.value] += 1

        return {
            "total_groups": len(self.groups),
            "assessed_groups": sum(1 for g in self.groups if g.result.is_assessed),
            "groups_by_source": by_source,
            "blind_spots": len(self.blind_spots),
            "assessed_safeguards": self.result.overall.assessed_count,
            "applicable_safeguards": self.result.overall.total_safeguards,
            "completion": round(self.result.overall.completion, 4),
            "mapped_objects": len(
                {obj.id for g in self.groups for obj in g.mapped_objects}
            ),
            "unmapped_objects": len(self.unmapped_objects),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain, serializable reporting payload."""
        return {
            "framework": {"id": self.framework_id, "name": self.framework_name},
            "timestamp": self.timestamp.isoformat(),
            "tier_filter": self.tier_filter,
            "effective_score": self.effective_score,
            "effective_level": self.effective_level,
            "effective_label": get_maturity_label(self.effective_level),
            "overall": self.result.overall.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
            "groups": [g.to_dict() for g in self.groups],
            "unmapped_objects": [
                {"id": obj.id, "name": obj.name} for obj in self.unmapped_objects
            ],
            "statistics": self.statistics,
        }


def _coerce_override(group_id: str, value: Any) -> Override | None:
    if value is None or isinstance(value, Override):
        return value
    if isinstance(value, Mapping):
        return Override.from_dict(value, group_id)
    return Override(group_id=group_id, level=value)


class PostureEngine:
    """
    Assesses one framework from inventory objects, safeguard assessments
    and overrides.

    Example:
        catalog, crosswalk = get_builtin_framework("cis_v8")
        engine = PostureEngine(catalog, crosswalk)
        snapshot = store.snapshot("cis_v8")
        assessment = engine.assess(
            objects,
            assessments=snapshot.assessments,
            overrides=snapshot.overrides,
        )
        print(assessment.effective_score)

    Attributes:
        catalog: Framework catalog.
        mapper: Inventory mapper built from the catalog and crosswalk.
        count_zero_compliance: Passed through to the auto estimator.
    """

    def __init__(
        self,
        catalog: FrameworkCatalog,
        crosswalk: Crosswalk | None = None,
        count_zero_compliance: bool = False,
    ) -> None:
        """
        Initialize the engine.

        Args:
            catalog: Framework catalog.
            crosswalk: Crosswalk tables; without one every group is a blind spot.
            count_zero_compliance: Count a recorded 0% compliance as tracking.

        Raises:
            CatalogError: If the crosswalk references groups not in the catalog.
        """
        self.catalog = catalog
        self.mapper = InventoryMapper(catalog, crosswalk or Crosswalk())
        self.count_zero_compliance = count_zero_compliance

    def assess(
        self,
        objects: Iterable[InventoryObject] = (),
        assessments: Mapping[str, Any] | None = None,
        overrides: Mapping[str, Any] | None = None,
        tier_filter: int | None = None,
    ) -> FrameworkAssessment:
        """
        Run a full assessment.

        Args:
            objects: Inventory objects.
            assessments: Safeguard assessment records by safeguard id.
            overrides: Overrides by group id (Override objects, mappings with
                a ``level`` key, or bare levels).
            tier_filter: Optional tier cutoff.

        Returns:
            FrameworkAssessment.
        """
        objects = list(objects)
        overrides = overrides or {}

        mapping = self.mapper.build_mapping(objects)
        result = aggregate_framework(self.catalog.groups, assessments or {}, tier_filter)

        groups: list[GroupAssessment] = []
        for group in self.catalog.groups:
            mapped = mapping[group.id]
            auto = derive_auto_maturity(mapped, self.count_zero_compliance)
            override = _coerce_override(group.id, overrides.get(group.id))
            group_result = result.get_group(group.id)
            level, source = resolve_maturity(group_result, auto, override)

            logger.debug(
                "Group %s: effective=%d source=%s auto=%d mapped=%d",
                group.id,
                level,
                source.value,
                auto,
                len(mapped),
            )
            groups.append(
                GroupAssessment(
                    group_id=group.id,
                    name=group.name,
                    section_id=group.section_id,
                    result=group_result,
                    auto_maturity=auto,
                    override=override,
                    effective_maturity=level,
                    source=source,
                    mapped_objects=tuple(mapped),
                )
            )

        sections = self._rollup_sections(groups)

        assessment = FrameworkAssessment(
            framework_id=self.catalog.id,
            framework_name=self.catalog.name,
            timestamp=datetime.now(UTC),
            tier_filter=tier_filter,
            result=result,
            groups=tuple(groups),
            sections=sections,
            unmapped_objects=tuple(self.mapper.get_unmapped_objects(objects)),
        )

        logger.info(
            "Assessed %s: effective %.1f (level %d), safeguard score %.3f, "
            "%d/%d safeguards assessed",
            self.catalog.id,
            assessment.effective_score,
            assessment.effective_level,
            result.overall.score,
            result.overall.assessed_count,
            result.overall.total_safeguards,
        )
        return assessment

    def _rollup_sections(
        self, groups: list[GroupAssessment]
    ) -> tuple[SectionRollup, ...]:
        """Roll effective maturity up to sections."""
        rollups = []
        for section in self.catalog.sections:
            members = [g for g in groups if g.section_id == section.id]
            score = _mean_level([g.effective_maturity for g in members])
            rollups.append(
                SectionRollup(
                    section_id=section.id,
                    name=section.name,
                    group_ids=tuple(g.group_id for g in members),
                    score=score,
                    level=clamp_level(score),
                )
            )
        return tuple(rollups)

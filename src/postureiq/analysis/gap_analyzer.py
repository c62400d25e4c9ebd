"""
Gap analysis for framework assessments.

Identifies control groups whose effective maturity falls short of a target
and safeguards scoring in the red band. All analysis is deterministic and
fully auditable.

Gap Types:
    - blind_spot: No inventory object maps to the group and nothing else
      (safeguard data or override) speaks for it
    - unassessed: Objects exist but no safeguard has been assessed and no
      override is set; the level is only the capped auto estimate
    - low_maturity: The group is assessed (or overridden) below target

Priority Levels:
    - critical: Level 0 in a critical section
    - high: Level 0 anywhere, or level 1 in a critical section
    - medium: Level 1, or an unassessed group
    - low: Everything else below target
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from postureiq.assessment.engine import FrameworkAssessment, GroupAssessment
from postureiq.frameworks.catalog import FrameworkCatalog
from postureiq.scoring.maturity_calculator import get_axis_values
from postureiq.scoring.override_resolver import MaturitySource
from postureiq.scoring.safeguard_scorer import RED_BELOW, compute_safeguard_score, is_in_tier
from postureiq.scoring.statuses import get_maturity_label

logger = logging.getLogger(__name__)


class GapType(str, Enum):
    """Type of maturity gap."""

    BLIND_SPOT = "blind_spot"
    UNASSESSED = "unassessed"
    LOW_MATURITY = "low_maturity"


class Priority(str, Enum):
    """Gap priority level."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


@dataclass
class WeakSafeguard:
    """
    A scored safeguard in the red band.

    Attributes:
        safeguard_id: Safeguard identifier.
        name: Safeguard name.
        group_id: Containing group.
        score: Safeguard score (0.0 - 1.0).
        policy: Policy status id.
        implementation: Implementation status id.
    """

    safeguard_id: str
    name: str
    group_id: str
    score: float
    policy: str | None
    implementation: str | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "safeguard_id": self.safeguard_id,
            "name": self.name,
            "group_id": self.group_id,
            "score": round(self.score, 4),
            "policy": self.policy,
            "implementation": self.implementation,
        }


@dataclass
class Gap:
    """
    A maturity gap in one control group.

    Attributes:
        group_id: Control group identifier.
        group_name: Human-readable group name.
        section_id: Parent section, if any.
        current_maturity: Effective maturity level (0-5).
        target_maturity: Target maturity level.
        source: Signal that produced the current maturity.
        gap_type: Type of gap identified.
        priority: Priority level for addressing.
        explanation: Human-readable explanation of the gap.
        recommendation: Next action to close the gap.
        weak_safeguards: Red-band safeguards in the group.
    """

    group_id: str
    group_name: str
    section_id: str | None
    current_maturity: int
    target_maturity: int
    source: MaturitySource
    gap_type: GapType
    priority: Priority
    explanation: str
    recommendation: str
    weak_safeguards: list[WeakSafeguard] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "group_id": self.group_id,
            "group_name": self.group_name,
            "section_id": self.section_id,
            "current_maturity": self.current_maturity,
            "target_maturity": self.target_maturity,
            "source": self.source.value,
            "gap_type": self.gap_type.value,
            "priority": self.priority.value,
            "explanation": self.explanation,
            "recommendation": self.recommendation,
            "weak_safeguards": [w.to_dict() for w in self.weak_safeguards],
        }


@dataclass
class GapAnalysis:
    """
    Complete gap analysis results.

    Attributes:
        timestamp: When the analysis was performed.
        framework_id: Framework analyzed.
        target_maturity: Target level used.
        total_groups: Number of control groups.
        groups_with_gaps: Number of groups below target.
        gap_percentage: Percentage of groups with gaps.
        gaps_by_priority: Count of gaps by priority level.
        gaps_by_type: Count of gaps by type.
        gaps_by_section: Gaps organized by section (empty for flat frameworks).
        all_gaps: Every gap, highest priority first.
        weak_safeguards: Every red-band safeguard in catalog order.
        critical_gaps: Gaps requiring immediate attention.
    """

    timestamp: datetime
    framework_id: str
    target_maturity: int
    total_groups: int
    groups_with_gaps: int
    gap_percentage: float
    gaps_by_priority: dict[str, int]
    gaps_by_type: dict[str, int]
    gaps_by_section: dict[str, list[Gap]]
    all_gaps: list[Gap]
    weak_safeguards: list[WeakSafeguard]
    critical_gaps: list[Gap]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "framework_id": self.framework_id,
            "target_maturity": self.target_maturity,
            "total_groups": self.total_groups,
            "groups_with_gaps": self.groups_with_gaps,
            "gap_percentage": round(self.gap_percentage, 2),
            "gaps_by_priority": self.gaps_by_priority,
            "gaps_by_type": self.gaps_by_type,
            "gaps_by_section": {
                k: [g.to_dict() for g in v] for k, v in self.gaps_by_section.items()
            },
            "all_gaps": [g.to_dict() for g in self.all_gaps],
            "weak_safeguards": [w.to_dict() for w in self.weak_safeguards],
            "critical_gaps": [g.to_dict() for g in self.critical_gaps],
        }


@dataclass
class GapAnalyzerConfig:
    """
    Configuration for gap analysis.

    Attributes:
        target_maturity: Default target maturity level.
        critical_sections: Sections considered critical (gaps are higher priority).
        weak_threshold: Safeguard scores below this are reported as weak.
    """

    target_maturity: int = 3
    critical_sections: list[str] = field(
        default_factory=lambda: ["PR", "DE"]  # Protect and Detect
    )
    weak_threshold: float = RED_BELOW


RECOMMENDATIONS = {
    GapType.BLIND_SPOT: (
        "Inventory the tools and processes that cover this group, or assess its "
        "safeguards directly."
    ),
    GapType.UNASSESSED: (
        "Assess the group's safeguards; inventory metadata alone cannot show "
        "more than Repeatable maturity."
    ),
    GapType.LOW_MATURITY: (
        "Work the weakest safeguards first: document and approve policy, then "
        "extend implementation across systems."
    ),
}


class GapAnalyzer:
    """
    Analyzes framework assessments for maturity gaps.

    Example:
        analyzer = GapAnalyzer(target_maturity=3)
        analysis = analyzer.analyze(assessment, catalog, snapshot.assessments)

        for gap in analysis.critical_gaps:
            print(gap.group_id, gap.explanation)

    Attributes:
        config: GapAnalyzerConfig with analysis settings.
    """

    def __init__(
        self,
        target_maturity: int | None = None,
        config: GapAnalyzerConfig | None = None,
    ) -> None:
        """
        Initialize the gap analyzer.

        Args:
            target_maturity: Target level (overrides config).
            config: GapAnalyzerConfig with analysis settings.
                Defaults to standard settings.
        """
        config = config or GapAnalyzerConfig()
        if target_maturity is not None:
            config = replace(config, target_maturity=target_maturity)
        self.config = config
        self._last_analysis: GapAnalysis | None = None

    def analyze(
        self,
        assessment: FrameworkAssessment,
        catalog: FrameworkCatalog,
        assessments: Mapping[str, Any] | None = None,
    ) -> GapAnalysis:
        """
        Perform complete gap analysis on an assessment.

        Args:
            assessment: FrameworkAssessment from PostureEngine.
            catalog: The catalog the assessment was run against.
            assessments: Safeguard assessment records, for weak-safeguard
                detection. Without them no weak safeguards are reported.

        Returns:
            GapAnalysis with all identified gaps.
        """
        target = self.config.target_maturity
        weak = self.find_weak_safeguards(catalog, assessments or {}, assessment.tier_filter)

        weak_by_group: dict[str, list[WeakSafeguard]] = {}
        for item in weak:
            weak_by_group.setdefault(item.group_id, []).append(item)

        gaps_by_section: dict[str, list[Gap]] = {s.id: [] for s in catalog.sections}
        gaps_by_priority: dict[str, int] = {p.value: 0 for p in Priority}
        gaps_by_type: dict[str, int] = {t.value: 0 for t in GapType}
        all_gaps: list[Gap] = []

        for group in assessment.groups:
            gap = self._analyze_group(group, target, weak_by_group.get(group.group_id, []))
            if gap is None:
                continue
            all_gaps.append(gap)
            gaps_by_priority[gap.priority.value] += 1
            gaps_by_type[gap.gap_type.value] += 1
            if gap.section_id in gaps_by_section:
                gaps_by_section[gap.section_id].append(gap)

        all_gaps.sort(key=lambda g: PRIORITY_ORDER[g.priority])

        total_groups = len(assessment.groups)
        gap_percentage = (
            (len(all_gaps) / total_groups * 100) if total_groups > 0 else 0.0
        )

        analysis = GapAnalysis(
            timestamp=datetime.now(UTC),
            framework_id=assessment.framework_id,
            target_maturity=target,
            total_groups=total_groups,
            groups_with_gaps=len(all_gaps),
            gap_percentage=gap_percentage,
            gaps_by_priority=gaps_by_priority,
            gaps_by_type=gaps_by_type,
            gaps_by_section=gaps_by_section,
            all_gaps=all_gaps,
            weak_safeguards=weak,
            critical_gaps=[g for g in all_gaps if g.priority == Priority.CRITICAL],
        )

        self._last_analysis = analysis
        logger.info(
            "Gap analysis complete: %d gaps identified (%.1f%% of groups), "
            "%d weak safeguards",
            len(all_gaps),
            gap_percentage,
            len(weak),
        )

        return analysis

    def find_weak_safeguards(
        self,
        catalog: FrameworkCatalog,
        assessments: Mapping[str, Any],
        tier_filter: int | None = None,
    ) -> list[WeakSafeguard]:
        """
        Find in-scope safeguards scoring below the weak threshold.

        Unscored and N/A safeguards are never weak.

        Args:
            catalog: Framework catalog.
            assessments: Safeguard assessment records by safeguard id.
            tier_filter: Optional tier cutoff.

        Returns:
            Weak safeguards in catalog order.
        """
        weak: list[WeakSafeguard] = []
        for safeguard in catalog.all_safeguards():
            if not is_in_tier(safeguard, tier_filter):
                continue
            record = assessments.get(safeguard.id)
            if record is None:
                continue
            policy, implementation = get_axis_values(record)
            score = compute_safeguard_score(policy, implementation)
            if score is not None and score < self.config.weak_threshold:
                weak.append(
                    WeakSafeguard(
                        safeguard_id=safeguard.id,
                        name=safeguard.name,
                        group_id=safeguard.group_id,
                        score=score,
                        policy=policy or None,
                        implementation=implementation or None,
                    )
                )
        return weak

    def _analyze_group(
        self,
        group: GroupAssessment,
        target_maturity: int,
        weak: list[WeakSafeguard],
    ) -> Gap | None:
        """
        Analyze a single group for a gap.

        Returns:
            Gap if one is identified, None otherwise.
        """
        if group.effective_maturity >= target_maturity:
            return None

        gap_type = self._determine_gap_type(group)
        priority = self._determine_priority(group, gap_type)

        return Gap(
            group_id=group.group_id,
            group_name=group.name,
            section_id=group.section_id,
            current_maturity=group.effective_maturity,
            target_maturity=target_maturity,
            source=group.source,
            gap_type=gap_type,
            priority=priority,
            explanation=self._build_explanation(group, gap_type, target_maturity),
            recommendation=RECOMMENDATIONS[gap_type],
            weak_safeguards=weak,
        )

    def _determine_gap_type(self, group: GroupAssessment) -> GapType:
        """Determine the type of gap from the group's maturity source."""
        if group.source != MaturitySource.AUTO:
            return GapType.LOW_MATURITY
        if group.is_blind_spot:
            return GapType.BLIND_SPOT
        return GapType.UNASSESSED

    def _determine_priority(self, group: GroupAssessment, gap_type: GapType) -> Priority:
        """Determine gap priority based on level and section."""
        level = group.effective_maturity
        is_critical_section = group.section_id in self.config.critical_sections

        if level == 0 and is_critical_section:
            return Priority.CRITICAL

        if level == 0:
            return Priority.HIGH

        if level == 1 and is_critical_section:
            return Priority.HIGH

        if level == 1 or gap_type == GapType.UNASSESSED:
            return Priority.MEDIUM

        return Priority.LOW

    def _build_explanation(
        self,
        group: GroupAssessment,
        gap_type: GapType,
        target_maturity: int,
    ) -> str:
        """Build human-readable explanation of the gap."""
        parts = [
            f"{group.group_id} '{group.name}' is at maturity level "
            f"{group.effective_maturity} ({get_maturity_label(group.effective_maturity)}), "
            f"below target level {target_maturity}. "
        ]

        if gap_type == GapType.BLIND_SPOT:
            parts.append("No inventory object maps to this group and it has not been assessed.")
        elif gap_type == GapType.UNASSESSED:
            parts.append(
                f"{len(group.mapped_objects)} inventory objects map here, but no "
                "safeguard has been assessed; the level is a capped estimate."
            )
        elif group.source == MaturitySource.OVERRIDE:
            parts.append("The level is a manual override.")
        else:
            parts.append(
                f"{group.result.assessed_count} of {group.result.total_applicable} "
                f"applicable safeguards assessed, scoring {group.result.score:.2f}."
            )

        return "".join(parts)

    def get_critical_gaps(self) -> list[Gap]:
        """Get gaps requiring immediate attention from the last analysis."""
        if not self._last_analysis:
            return []
        return self._last_analysis.critical_gaps

    def get_gaps_by_priority(self, priority: Priority) -> list[Gap]:
        """
        Get all gaps with a specific priority.

        Args:
            priority: Priority level to filter by.

        Returns:
            List of gaps with that priority.
        """
        if not self._last_analysis:
            return []
        return [g for g in self._last_analysis.all_gaps if g.priority == priority]

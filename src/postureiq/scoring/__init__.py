"""
Safeguard scoring, maturity aggregation, and maturity resolution.

All scoring logic is deterministic, pure, and auditable - no machine
learning or probabilistic inference is used, and no function here mutates
its inputs.

Status Vocabularies:
    Policy and implementation statuses, each a closed, ranked vocabulary
    with one "not applicable" member.

Safeguard Scorer:
    policy * 0.4 + implementation * 0.6, with N/A axes excluded.

Maturity Calculator:
    Group scores are means of scored safeguards; framework scores are means
    of assessed groups; scores map to maturity levels 0-5.

Auto Maturity:
    Conservative (capped at Level 2) estimate from inventory metadata.

Override Resolver:
    Manual override > safeguard-derived maturity > auto estimate.
"""

from postureiq.scoring.auto_maturity import AUTO_MATURITY_CAP, derive_auto_maturity
from postureiq.scoring.maturity_calculator import (
    MATURITY_THRESHOLDS,
    FrameworkResult,
    GroupResult,
    GroupScore,
    OverallResult,
    aggregate_framework,
    aggregate_group,
    compare_results,
    score_to_maturity,
)
from postureiq.scoring.override_resolver import (
    MaturitySource,
    Override,
    clamp_level,
    effective_maturity,
    resolve_maturity,
)
from postureiq.scoring.safeguard_scorer import (
    IMPLEMENTATION_WEIGHT,
    POLICY_WEIGHT,
    compute_safeguard_score,
    is_in_tier,
    score_band,
)
from postureiq.scoring.statuses import (
    IMPLEMENTATION_STATUSES,
    MATURITY_LEVELS,
    NOT_APPLICABLE,
    POLICY_STATUSES,
    StatusDefinition,
    StatusVocabulary,
    get_maturity_label,
)

__all__ = [
    # Statuses
    "StatusDefinition",
    "StatusVocabulary",
    "POLICY_STATUSES",
    "IMPLEMENTATION_STATUSES",
    "NOT_APPLICABLE",
    "MATURITY_LEVELS",
    "get_maturity_label",
    # Safeguard Scorer
    "compute_safeguard_score",
    "is_in_tier",
    "score_band",
    "POLICY_WEIGHT",
    "IMPLEMENTATION_WEIGHT",
    # Maturity Calculator
    "GroupScore",
    "GroupResult",
    "OverallResult",
    "FrameworkResult",
    "aggregate_group",
    "aggregate_framework",
    "score_to_maturity",
    "compare_results",
    "MATURITY_THRESHOLDS",
    # Auto Maturity
    "derive_auto_maturity",
    "AUTO_MATURITY_CAP",
    # Override Resolver
    "Override",
    "MaturitySource",
    "clamp_level",
    "effective_maturity",
    "resolve_maturity",
]

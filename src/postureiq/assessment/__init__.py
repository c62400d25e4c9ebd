"""
Posture assessment: the engine that composes scoring, mapping and override
resolution, and the store that holds analyst input.
"""

from postureiq.assessment.engine import (
    FrameworkAssessment,
    GroupAssessment,
    PostureEngine,
    SectionRollup,
    round_half_up,
)
from postureiq.assessment.store import (
    STATE_FILENAME,
    AssessmentSnapshot,
    AssessmentStore,
    ComplianceSnapshot,
    SafeguardAssessment,
    StoreError,
)

__all__ = [
    # Engine
    "PostureEngine",
    "FrameworkAssessment",
    "GroupAssessment",
    "SectionRollup",
    "round_half_up",
    # Store
    "AssessmentStore",
    "AssessmentSnapshot",
    "ComplianceSnapshot",
    "SafeguardAssessment",
    "StoreError",
    "STATE_FILENAME",
]

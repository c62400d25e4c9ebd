"""
Gap analysis for PostureIQ.

Finds control groups below a target maturity and safeguards in the red
band, and prioritizes them.
"""

from postureiq.analysis.gap_analyzer import (
    Gap,
    GapAnalysis,
    GapAnalyzer,
    GapAnalyzerConfig,
    GapType,
    Priority,
    WeakSafeguard,
)

__all__ = [
    "Gap",
    "GapAnalysis",
    "GapAnalyzer",
    "GapAnalyzerConfig",
    "GapType",
    "Priority",
    "WeakSafeguard",
]

"""
PostureIQ - Security Posture Maturity Engine

Scores security-control frameworks from analyst assessments and inventory
metadata, producing a defensible maturity level (0-5) per control group
and per framework.

Key Features:
    - Dual-axis safeguard scoring (policy and implementation)
    - Group and framework aggregation with N/A and tier exclusions
    - Inventory-to-framework mapping through OR'd crosswalks
    - Conservative auto-maturity estimates capped at Level 2
    - Manual overrides that always win, with a recorded source
    - Gap analysis and JSON report export

Design Principles:
    - Determinism: every score is a pure function of its inputs
    - Transparency: every level can be traced to its source
    - Portability: catalogs are data, not code
"""

__version__ = "0.1.0"
__author__ = ""
__email__ = ""

from postureiq.config.settings import Settings, load_config

__all__ = [
    "__version__",
    "Settings",
    "load_config",
]

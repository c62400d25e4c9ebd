"""
Built-in framework catalogs and crosswalk tables.

Ships two group-level catalogs:
    - cis_v8: CIS Controls v8, 18 control groups
    - nist_csf_2: NIST CSF 2.0, 6 functions (sections) and 22 categories (groups)

Safeguard lists are reference data supplied by catalog files (see
``load_catalog`` and ``extends:``); the built-ins define the groups and the
crosswalks from the organization's product families and from the NIST
SP 800-53 control families.

FrameworkRegistry collects the built-ins plus any catalog files named in
configuration, so callers resolve frameworks by id without touching
module-level state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from postureiq.frameworks.catalog import (
    CatalogError,
    ControlGroup,
    FrameworkCatalog,
    Section,
    load_catalog,
)
from postureiq.frameworks.mapping_engine import Crosswalk

logger = logging.getLogger(__name__)


# =============================================================================
# SOURCE TAXONOMIES
# =============================================================================

PRODUCT_FAMILIES: tuple[str, ...] = (
    "AI Security",
    "Data Protection",
    "Insider Risk",
    "Identity & Access Management",
    "Software Security Services",
    "Vulnerability Management",
    "BISO",
)

NIST_80053_FAMILIES: dict[str, str] = {
    "AC": "Access Control",
    "AT": "Awareness and Training",
    "AU": "Audit and Accountability",
    "CA": "Assessment, Authorization, and Monitoring",
    "CM": "Configuration Management",
    "CP": "Contingency Planning",
    "IA": "Identification and Authentication",
    "IR": "Incident Response",
    "MA": "Maintenance",
    "MP": "Media Protection",
    "PE": "Physical and Environmental Protection",
    "PL": "Planning",
    "PM": "Program Management",
    "PS": "Personnel Security",
    "PT": "Personally Identifiable Information Processing",
    "RA": "Risk Assessment",
    "SA": "System and Services Acquisition",
    "SC": "System and Communications Protection",
    "SI": "System and Information Integrity",
    "SR": "Supply Chain Risk Management",
}


# =============================================================================
# CIS CONTROLS V8
# =============================================================================

CIS_V8_ID = "cis_v8"

_CIS_GROUPS = (
    ("CIS-1", "Inventory and Control of Enterprise Assets",
     "Actively manage all enterprise assets connected to the infrastructure."),
    ("CIS-2", "Inventory and Control of Software Assets",
     "Actively manage all software on the network so that only authorized software is installed."),
    ("CIS-3", "Data Protection",
     "Identify, classify, securely handle, retain, and dispose of data."),
    ("CIS-4", "Secure Configuration of Enterprise Assets and Software",
     "Establish and maintain secure configurations for enterprise assets and software."),
    ("CIS-5", "Account Management",
     "Assign and manage authorization to credentials for user accounts."),
    ("CIS-6", "Access Control Management",
     "Create, assign, manage, and revoke access credentials and privileges."),
    ("CIS-7", "Continuous Vulnerability Management",
     "Continuously assess and track vulnerabilities on all enterprise assets."),
    ("CIS-8", "Audit Log Management",
     "Collect, alert, review, and retain audit logs of events."),
    ("CIS-9", "Email and Web Browser Protections",
     "Improve protections and detections of threats from email and web vectors."),
    ("CIS-10", "Malware Defenses",
     "Prevent or control the installation, spread, and execution of malicious applications."),
    ("CIS-11", "Data Recovery",
     "Establish and maintain data recovery practices for in-scope enterprise assets."),
    ("CIS-12", "Network Infrastructure Management",
     "Establish and maintain the security of network infrastructure devices."),
    ("CIS-13", "Network Monitoring and Defense",
     "Establish and maintain comprehensive network monitoring and defense."),
    ("CIS-14", "Security Awareness and Skills Training",
     "Establish and maintain a security awareness program."),
    ("CIS-15", "Service Provider Management",
     "Evaluate service providers who hold sensitive data or run critical IT platforms."),
    ("CIS-16", "Application Software Security",
     "Manage the security lifecycle of in-house developed, hosted, or acquired software."),
    ("CIS-17", "Incident Response Management",
     "Develop and maintain an incident response capability."),
    ("CIS-18", "Penetration Testing",
     "Test the effectiveness and resiliency of enterprise assets by exploiting weaknesses."),
)

CIS_V8_CROSSWALK = Crosswalk(
    primary={
        "AI Security": ("CIS-1", "CIS-2", "CIS-4", "CIS-16", "CIS-18"),
        "Data Protection": ("CIS-3", "CIS-8", "CIS-9", "CIS-11"),
        "Insider Risk": ("CIS-5", "CIS-6", "CIS-8", "CIS-9", "CIS-13"),
        "Identity & Access Management": ("CIS-5", "CIS-6"),
        "Software Security Services": ("CIS-2", "CIS-4", "CIS-16", "CIS-18"),
        "Vulnerability Management": ("CIS-7", "CIS-10", "CIS-18"),
        "BISO": ("CIS-15",),
    },
    secondary={
        "AC": ("CIS-5", "CIS-6"),
        "AT": ("CIS-14",),
        "AU": ("CIS-8",),
        "CA": ("CIS-4", "CIS-18"),
        "CM": ("CIS-2", "CIS-4"),
        "CP": ("CIS-11",),
        "IA": ("CIS-5", "CIS-6"),
        "IR": ("CIS-17",),
        "MA": ("CIS-4",),
        "MP": ("CIS-3",),
        "PE": (),
        "PL": (),
        "PM": (),
        "PS": ("CIS-14",),
        "PT": ("CIS-3",),
        "RA": ("CIS-7", "CIS-18"),
        "SA": ("CIS-15", "CIS-16"),
        "SC": ("CIS-12", "CIS-13"),
        "SI": ("CIS-7", "CIS-10", "CIS-13"),
        "SR": ("CIS-15",),
    },
)


def _build_cis_v8() -> FrameworkCatalog:
    groups = [
        ControlGroup(id=gid, name=name, description=desc)
        for gid, name, desc in _CIS_GROUPS
    ]
    return FrameworkCatalog.build(CIS_V8_ID, "CIS Controls v8", groups)


# =============================================================================
# NIST CSF 2.0
# =============================================================================

NIST_CSF_2_ID = "nist_csf_2"

_CSF_FUNCTIONS = (
    ("GV", "Govern",
     "Establish and monitor the organization's cybersecurity risk management strategy, "
     "expectations, and policy.",
     (
         ("GV.OC", "Organizational Context"),
         ("GV.RM", "Risk Management Strategy"),
         ("GV.RR", "Roles, Responsibilities, and Authorities"),
         ("GV.PO", "Policy"),
         ("GV.OV", "Oversight"),
         ("GV.SC", "Cybersecurity Supply Chain Risk Management"),
     )),
    ("ID", "Identify",
     "Understand the organization's current cybersecurity risks.",
     (
         ("ID.AM", "Asset Management"),
         ("ID.RA", "Risk Assessment"),
         ("ID.IM", "Improvement"),
     )),
    ("PR", "Protect",
     "Use safeguards to manage the organization's cybersecurity risks.",
     (
         ("PR.AA", "Identity Management, Authentication, and Access Control"),
         ("PR.AT", "Awareness and Training"),
         ("PR.DS", "Data Security"),
         ("PR.PS", "Platform Security"),
         ("PR.IR", "Technology Infrastructure Resilience"),
     )),
    ("DE", "Detect",
     "Find and analyze possible cybersecurity attacks and compromises.",
     (
         ("DE.CM", "Continuous Monitoring"),
         ("DE.AE", "Adverse Event Analysis"),
     )),
    ("RS", "Respond",
     "Take action regarding a detected cybersecurity incident.",
     (
         ("RS.MA", "Incident Management"),
         ("RS.AN", "Incident Analysis"),
         ("RS.CO", "Incident Response Reporting and Communication"),
         ("RS.MI", "Incident Mitigation"),
     )),
    ("RC", "Recover",
     "Restore assets and operations that were impacted by a cybersecurity incident.",
     (
         ("RC.RP", "Incident Recovery Plan Execution"),
         ("RC.CO", "Incident Recovery Communication"),
     )),
)

NIST_CSF_2_CROSSWALK = Crosswalk(
    primary={
        "AI Security": ("GV.RM", "ID.RA", "PR.DS", "PR.PS"),
        "Data Protection": ("PR.DS", "PR.IR", "RC.RP", "RC.CO"),
        "Insider Risk": ("PR.AA", "DE.CM", "DE.AE", "RS.MA"),
        "Identity & Access Management": ("PR.AA", "PR.AT", "GV.RR"),
        "Software Security Services": ("PR.PS", "DE.CM", "RS.MI", "ID.IM"),
        "Vulnerability Management": ("ID.RA", "ID.AM", "DE.CM", "DE.AE", "RS.MI"),
        "BISO": ("GV.SC", "ID.RA", "GV.OV"),
    },
    secondary={
        "AC": ("PR.AA",),
        "AT": ("PR.AT",),
        "AU": ("DE.CM",),
        "CA": ("GV.OV", "ID.RA"),
        "CM": ("PR.PS", "ID.AM"),
        "CP": ("RC.RP", "RC.CO"),
        "IA": ("PR.AA",),
        "IR": ("RS.MA", "RS.AN", "RS.CO"),
        "MA": ("PR.PS",),
        "MP": ("PR.DS",),
        "PE": (),
        "PL": ("GV.PO",),
        "PM": ("GV.OC", "GV.RM"),
        "PS": ("GV.RR",),
        "PT": ("PR.DS",),
        "RA": ("ID.RA",),
        "SA": ("GV.SC", "PR.PS"),
        "SC": ("PR.DS", "PR.IR"),
        "SI": ("DE.CM", "DE.AE", "RS.MI"),
        "SR": ("GV.SC",),
    },
)


def _build_nist_csf_2() -> FrameworkCatalog:
    sections = []
    groups = []
    for func_id, func_name, func_desc, categories in _CSF_FUNCTIONS:
        sections.append(Section(id=func_id, name=func_name, description=func_desc))
        for cat_id, cat_name in categories:
            groups.append(ControlGroup(id=cat_id, name=cat_name, section_id=func_id))
    return FrameworkCatalog.build(NIST_CSF_2_ID, "NIST CSF 2.0", groups, sections=sections)


_BUILTIN_FRAMEWORKS: dict[str, tuple[FrameworkCatalog, Crosswalk]] = {
    CIS_V8_ID: (_build_cis_v8(), CIS_V8_CROSSWALK),
    NIST_CSF_2_ID: (_build_nist_csf_2(), NIST_CSF_2_CROSSWALK),
}

for _catalog, _crosswalk in _BUILTIN_FRAMEWORKS.values():
    _crosswalk.validate(_catalog, PRODUCT_FAMILIES, NIST_80053_FAMILIES)


# =============================================================================
# PUBLIC API
# =============================================================================

def get_builtin_framework(framework_id: str) -> tuple[FrameworkCatalog, Crosswalk] | None:
    """
    Get a built-in framework by id.

    Args:
        framework_id: Framework identifier ("cis_v8", "nist_csf_2").

    Returns:
        Tuple of (catalog, crosswalk) if found, None otherwise.
    """
    return _BUILTIN_FRAMEWORKS.get(framework_id.lower())


def get_builtin_framework_ids() -> list[str]:
    """Get the ids of all built-in frameworks."""
    return list(_BUILTIN_FRAMEWORKS)


class FrameworkRegistry:
    """
    Registry of available frameworks.

    Starts with the built-in frameworks; catalog files add or replace
    entries by framework id.

    Example:
        registry = FrameworkRegistry.from_paths(settings.frameworks.catalog_paths)
        catalog, crosswalk = registry.get("cis_v8")
    """

    def __init__(self, include_builtins: bool = True) -> None:
        self._frameworks: dict[str, tuple[FrameworkCatalog, Crosswalk]] = {}
        if include_builtins:
            self._frameworks.update(_BUILTIN_FRAMEWORKS)

    @classmethod
    def from_paths(
        cls, paths: Iterable[Path | str], include_builtins: bool = True
    ) -> FrameworkRegistry:
        """
        Build a registry from catalog files.

        Raises:
            CatalogError: If any catalog file is invalid.
        """
        registry = cls(include_builtins=include_builtins)
        for path in paths:
            registry.register(*load_catalog(path))
        return registry

    def register(self, catalog: FrameworkCatalog, crosswalk: Crosswalk | None = None) -> None:
        """
        Register a framework, replacing any existing entry with the same id.

        Raises:
            CatalogError: If the crosswalk references groups not in the catalog.
        """
        crosswalk = crosswalk or Crosswalk()
        crosswalk.validate(catalog)
        if catalog.id in self._frameworks:
            logger.info("Replacing framework %s", catalog.id)
        self._frameworks[catalog.id] = (catalog, crosswalk)

    def get(self, framework_id: str) -> tuple[FrameworkCatalog, Crosswalk]:
        """
        Get a framework by id.

        Raises:
            CatalogError: If the framework is not registered.
        """
        try:
            return self._frameworks[framework_id]
        except KeyError:
            raise CatalogError(
                f"Unknown framework: {framework_id}. "
                f"Available: {', '.join(self.ids())}"
            ) from None

    def __contains__(self, framework_id: object) -> bool:
        return framework_id in self._frameworks

    def ids(self) -> list[str]:
        """Get all registered framework ids."""
        return list(self._frameworks)

    def catalogs(self) -> list[FrameworkCatalog]:
        """Get all registered catalogs."""
        return [catalog for catalog, _ in self._frameworks.values()]

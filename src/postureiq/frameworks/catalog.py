"""
Framework catalog structures.

A framework catalog is static reference data: sections (optional, e.g. the
six NIST CSF functions), control groups (CIS controls, CSF categories, GLBA
domains, ...) and the safeguards that belong to each group. Catalogs are
passed explicitly into the mapper and aggregators, so several frameworks
(and synthetic test catalogs) can coexist.

Integrity is checked when a catalog is built. A safeguard that points at a
missing group, or a duplicate group/safeguard id, raises CatalogError
immediately rather than being dropped.

Catalog file format (YAML or JSON):

    framework:
      id: glba
      name: GLBA Safeguards Rule
    extends: cis_v8            # optional, reuse a built-in catalog's groups
    sections:
      - {id: GV, name: Govern}
    groups:
      - {id: GLBA-1, name: Qualified Individual, section: GV}
    safeguards:
      - {id: GLBA-1.1, name: ..., group_id: GLBA-1, tiers: [1, 2, 3]}
    crosswalk:
      primary: {"Data Protection": [GLBA-1]}
      secondary: {AC: [GLBA-1]}
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from postureiq.scoring.safeguard_scorer import is_in_tier

if TYPE_CHECKING:
    from postureiq.frameworks.mapping_engine import Crosswalk

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when a catalog or crosswalk fails an integrity check."""

    pass


@dataclass(frozen=True)
class Safeguard:
    """
    The smallest assessable unit of a framework.

    Attributes:
        id: Safeguard identifier (e.g., "CIS-1.1").
        name: Short name.
        description: Requirement text.
        group_id: Owning control group.
        applicability_tiers: Tiers the safeguard applies to (e.g., CIS
            implementation groups). None means always included.
    """

    id: str
    name: str
    group_id: str
    description: str = ""
    applicability_tiers: frozenset[int] | None = None

    def __post_init__(self) -> None:
        if self.applicability_tiers is not None:
            if not self.applicability_tiers:
                raise CatalogError(f"Safeguard {self.id}: applicability tiers must not be empty")
            if any(not isinstance(t, int) or t < 1 for t in self.applicability_tiers):
                raise CatalogError(
                    f"Safeguard {self.id}: applicability tiers must be positive integers"
                )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Safeguard:
        """
        Create from dictionary.

        Raises:
            CatalogError: If a field is missing or malformed.
        """
        try:
            tiers = data.get("tiers", data.get("applicability_tiers"))
            return cls(
                id=str(data["id"]),
                name=str(data.get("name", data["id"])),
                group_id=str(data["group_id"]),
                description=str(data.get("description", "")),
                applicability_tiers=frozenset(tiers) if tiers is not None else None,
            )
        except KeyError as e:
            raise CatalogError(f"Safeguard definition missing field {e}: {data!r}") from e
        except (AttributeError, TypeError) as e:
            raise CatalogError(f"Malformed safeguard definition {data!r}: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "group_id": self.group_id,
            "description": self.description,
            "tiers": sorted(self.applicability_tiers) if self.applicability_tiers else None,
        }


@dataclass(frozen=True)
class Section:
    """A top-level grouping of control groups (e.g., a CSF function)."""

    id: str
    name: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Section:
        """Create from dictionary. Raises CatalogError if malformed."""
        try:
            return cls(
                id=str(data["id"]),
                name=str(data.get("name", data["id"])),
                description=str(data.get("description", "")),
            )
        except KeyError as e:
            raise CatalogError(f"Section definition missing field {e}: {data!r}") from e
        except (AttributeError, TypeError) as e:
            raise CatalogError(f"Malformed section definition {data!r}: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class ControlGroup:
    """
    A named cluster of safeguards within one framework.

    Attributes:
        id: Group identifier (e.g., "CIS-5", "PR.AA").
        name: Group name.
        description: Group description.
        section_id: Parent section, if the framework has sections.
        safeguards: Safeguards that belong to this group.
    """

    id: str
    name: str
    description: str = ""
    section_id: str | None = None
    safeguards: tuple[Safeguard, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ControlGroup:
        """
        Create from a catalog file entry (safeguards are attached separately).

        Raises:
            CatalogError: If the entry is missing its id or is not a mapping.
        """
        try:
            return cls(
                id=str(data["id"]),
                name=str(data.get("name", data["id"])),
                description=str(data.get("description", "")),
                section_id=data.get("section"),
            )
        except KeyError as e:
            raise CatalogError(f"Group definition missing field {e}: {data!r}") from e
        except (AttributeError, TypeError) as e:
            raise CatalogError(f"Malformed group definition {data!r}: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "section": self.section_id,
            "safeguards": [s.to_dict() for s in self.safeguards],
        }


@dataclass(frozen=True)
class FrameworkCatalog:
    """
    A complete framework catalog.

    Use FrameworkCatalog.build() to construct one from loose groups and
    safeguards; it attaches safeguards to their groups and runs the
    integrity checks.
    """

    id: str
    name: str
    groups: tuple[ControlGroup, ...]
    sections: tuple[Section, ...] = ()
    _group_index: dict[str, ControlGroup] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        index: dict[str, ControlGroup] = {}
        for group in self.groups:
            if group.id in index:
                raise CatalogError(f"Framework {self.id}: duplicate group id {group.id}")
            index[group.id] = group
        object.__setattr__(self, "_group_index", index)

        section_ids = {s.id for s in self.sections}
        if section_ids:
            for group in self.groups:
                if group.section_id is not None and group.section_id not in section_ids:
                    raise CatalogError(
                        f"Framework {self.id}: group {group.id} references "
                        f"unknown section {group.section_id}"
                    )

        seen: set[str] = set()
        for group in self.groups:
            for safeguard in group.safeguards:
                if safeguard.group_id != group.id:
                    raise CatalogError(
                        f"Framework {self.id}: safeguard {safeguard.id} is attached to "
                        f"{group.id} but declares group {safeguard.group_id}"
                    )
                if safeguard.id in seen:
                    raise CatalogError(
                        f"Framework {self.id}: duplicate safeguard id {safeguard.id}"
                    )
                seen.add(safeguard.id)

    @classmethod
    def build(
        cls,
        framework_id: str,
        name: str,
        groups: Sequence[ControlGroup],
        safeguards: Iterable[Safeguard] = (),
        sections: Sequence[Section] = (),
    ) -> FrameworkCatalog:
        """
        Build a catalog, attaching each safeguard to its group.

        Args:
            framework_id: Framework identifier.
            name: Framework display name.
            groups: Control groups (existing safeguards on them are kept).
            safeguards: Additional safeguards to attach by group_id.
            sections: Optional sections.

        Returns:
            Validated FrameworkCatalog.

        Raises:
            CatalogError: If a safeguard references a missing group or ids repeat.
        """
        group_ids = {g.id for g in groups}
        attached: dict[str, list[Safeguard]] = {g.id: list(g.safeguards) for g in groups}

        for safeguard in safeguards:
            if safeguard.group_id not in group_ids:
                raise CatalogError(
                    f"Framework {framework_id}: safeguard {safeguard.id} references "
                    f"unknown group {safeguard.group_id}"
                )
            attached[safeguard.group_id].append(safeguard)

        built_groups = tuple(
            replace(g, safeguards=tuple(attached[g.id])) for g in groups
        )
        return cls(
            id=framework_id,
            name=name,
            groups=built_groups,
            sections=tuple(sections),
        )

    def with_safeguards(self, safeguards: Iterable[Safeguard]) -> FrameworkCatalog:
        """Return a new catalog with additional safeguards attached."""
        return FrameworkCatalog.build(
            self.id, self.name, self.groups, safeguards, self.sections
        )

    def group_ids(self) -> list[str]:
        """Get all group ids in catalog order."""
        return [g.id for g in self.groups]

    def get_group(self, group_id: str) -> ControlGroup | None:
        """Get a control group by id."""
        return self._group_index.get(group_id)

    def get_section(self, section_id: str) -> Section | None:
        """Get a section by id."""
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def groups_in_section(self, section_id: str) -> list[ControlGroup]:
        """Get the groups that belong to a section."""
        return [g for g in self.groups if g.section_id == section_id]

    def all_safeguards(self) -> list[Safeguard]:
        """Get every safeguard in catalog order."""
        return [s for g in self.groups for s in g.safeguards]

    def get_safeguard(self, safeguard_id: str) -> Safeguard | None:
        """Get a safeguard by id."""
        for safeguard in self.all_safeguards():
            if safeguard.id == safeguard_id:
                return safeguard
        return None

    def safeguards_in_tier(self, tier_filter: int | None) -> list[Safeguard]:
        """Get the safeguards in scope for a tier filter."""
        return [s for s in self.all_safeguards() if is_in_tier(s, tier_filter)]

    def get_statistics(self) -> dict[str, int]:
        """Get counts of sections, groups and safeguards."""
        return {
            "sections": len(self.sections),
            "groups": len(self.groups),
            "safeguards": len(self.all_safeguards()),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "framework": {"id": self.id, "name": self.name},
            "sections": [s.to_dict() for s in self.sections],
            "groups": [
                {
                    "id": g.id,
                    "name": g.name,
                    "description": g.description,
                    "section": g.section_id,
                }
                for g in self.groups
            ],
            "safeguards": [s.to_dict() for s in self.all_safeguards()],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FrameworkCatalog:
        """
        Create a catalog from a parsed catalog document.

        Raises:
            CatalogError: If required fields are missing or integrity fails.
        """
        framework = data.get("framework") or {}
        if "id" not in framework:
            raise CatalogError("Catalog is missing framework.id")

        sections = [Section.from_dict(s) for s in data.get("sections", []) or []]
        groups = [ControlGroup.from_dict(g) for g in data.get("groups", []) or []]
        safeguards = [Safeguard.from_dict(s) for s in data.get("safeguards", []) or []]

        return cls.build(
            str(framework["id"]),
            str(framework.get("name", framework["id"])),
            groups,
            safeguards,
            sections,
        )


def _merge_sections(
    base: Sequence[Section], extra: Sequence[Section]
) -> list[Section]:
    """Overlay file sections on base sections; same id replaces, new ids append."""
    replacements = {s.id: s for s in extra}
    merged = [replacements.pop(s.id, s) for s in base]
    merged.extend(s for s in extra if s.id in replacements)
    return merged


def load_catalog(path: Path | str) -> tuple[FrameworkCatalog, Crosswalk]:
    """
    Load a framework catalog and its crosswalk from a YAML or JSON file.

    A file with ``extends: <builtin id>`` starts from that built-in catalog
    and crosswalk; its own sections, groups and safeguards are added on top
    (a section with an existing id replaces it), and a
    ``crosswalk`` block (if present) replaces the built-in crosswalk.

    Args:
        path: Path to the catalog file.

    Returns:
        Tuple of (catalog, crosswalk).

    Raises:
        CatalogError: If the file cannot be read, parsed, or fails integrity checks.
    """
    from postureiq.frameworks.builtin import get_builtin_framework
    from postureiq.frameworks.mapping_engine import Crosswalk

    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid catalog file {path}: {e}") from e
    except OSError as e:
        raise CatalogError(f"Cannot read catalog file {path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogError(f"Catalog file {path} must contain a mapping")

    base_id = data.get("extends")
    if base_id:
        base = get_builtin_framework(str(base_id))
        if base is None:
            raise CatalogError(f"Catalog {path} extends unknown framework {base_id}")
        base_catalog, base_crosswalk = base

        framework = data.get("framework") or {}
        extra_groups = [ControlGroup.from_dict(g) for g in data.get("groups", []) or []]
        extra_sections = [Section.from_dict(s) for s in data.get("sections", []) or []]
        safeguards = [Safeguard.from_dict(s) for s in data.get("safeguards", []) or []]
        catalog = FrameworkCatalog.build(
            str(framework.get("id", base_catalog.id)),
            str(framework.get("name", base_catalog.name)),
            list(base_catalog.groups) + extra_groups,
            safeguards,
            _merge_sections(base_catalog.sections, extra_sections),
        )
        crosswalk = base_crosswalk
        if "crosswalk" in data:
            crosswalk = Crosswalk.from_dict(data["crosswalk"] or {})
    else:
        catalog = FrameworkCatalog.from_dict(data)
        crosswalk = Crosswalk.from_dict(data.get("crosswalk") or {})

    crosswalk.validate(catalog)

    logger.info(
        "Loaded catalog %s from %s (%d groups, %d safeguards)",
        catalog.id,
        path,
        len(catalog.groups),
        len(catalog.all_safeguards()),
    )
    return catalog, crosswalk

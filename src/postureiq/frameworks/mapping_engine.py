"""
Inventory-to-framework mapping engine.

Maps tracked inventory objects (controls, processes, procedures) onto a
framework's control groups using two independent crosswalk tables:

    1. Primary: organizational product category -> group ids
    2. Secondary: secondary classification (e.g., NIST 800-53 family) -> group ids

An object qualifies for a group through either signal. The two crosswalks
are OR'd and the result is de-duplicated with set semantics, so a group
reached through both paths is counted once. Categories or classifications
with no crosswalk entry contribute nothing.

Each framework has its own crosswalk tables, so a mapper is built per
framework. Crosswalks are validated against the catalog at construction
time: a crosswalk that references a group the catalog does not define is a
configuration error (CatalogError), not something to skip silently.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from postureiq.frameworks.catalog import CatalogError, FrameworkCatalog

logger = logging.getLogger(__name__)

FORMAL_CLASSIFICATION = "Formal"


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    """Get the value of the first key present in data, or None."""
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass(frozen=True)
class InventoryObject:
    """
    An inventory object as seen by the engine (read-only).

    Attributes:
        id: Object identifier.
        name: Display name.
        categories: Primary (product) categories.
        secondary_classifications: Secondary classifications (e.g., NIST 800-53 families).
        is_formally_classified: Whether the object is a formally classified control.
        compliance_percent: Measured compliance (0-100), or None if not tracked.
        measured_compliance: Explicit flag that compliance is measured, for
            sources that record the fact without a percentage.
    """

    id: str
    name: str = ""
    categories: tuple[str, ...] = ()
    secondary_classifications: tuple[str, ...] = ()
    is_formally_classified: bool = False
    compliance_percent: float | None = None
    measured_compliance: bool = False

    @property
    def has_measured_compliance(self) -> bool:
        """True if flagged as measured or a non-zero compliance figure is recorded."""
        if self.measured_compliance:
            return True
        return self.compliance_percent is not None and self.compliance_percent > 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InventoryObject:
        """
        Create from a dictionary.

        Accepts snake_case and camelCase keys (``secondaryClassifications``,
        ``isFormallyClassified``, ``hasMeasuredCompliance``) as well as the
        inventory export keys (``listName``, ``productFamilies``,
        ``nistFamilies``, ``controlClassification``, ``compliancePercent``).
        """
        formal = _first(data, "is_formally_classified", "isFormallyClassified")
        if formal is None:
            formal = data.get("controlClassification") == FORMAL_CLASSIFICATION

        compliance = _first(data, "compliance_percent", "compliancePercent")
        if compliance is not None and compliance != "":
            compliance = float(compliance)
        else:
            compliance = None

        return cls(
            id=str(data["id"]),
            name=str(_first(data, "name", "listName") or ""),
            categories=tuple(_first(data, "categories", "productFamilies") or ()),
            secondary_classifications=tuple(
                _first(
                    data,
                    "secondary_classifications",
                    "secondaryClassifications",
                    "nistFamilies",
                )
                or ()
            ),
            is_formally_classified=bool(formal),
            compliance_percent=compliance,
            measured_compliance=bool(
                _first(data, "has_measured_compliance", "hasMeasuredCompliance")
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "categories": list(self.categories),
            "secondary_classifications": list(self.secondary_classifications),
            "is_formally_classified": self.is_formally_classified,
            "compliance_percent": self.compliance_percent,
            "has_measured_compliance": self.has_measured_compliance,
        }


@dataclass(frozen=True)
class Crosswalk:
    """
    The pair of crosswalk tables for one framework.

    Attributes:
        primary: Primary category -> group ids.
        secondary: Secondary classification -> group ids.
    """

    primary: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    secondary: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Crosswalk:
        """Create from a dictionary with ``primary`` and ``secondary`` tables."""
        return cls(
            primary={
                str(k): tuple(str(g) for g in (v or ()))
                for k, v in (data.get("primary") or {}).items()
            },
            secondary={
                str(k): tuple(str(g) for g in (v or ()))
                for k, v in (data.get("secondary") or {}).items()
            },
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "primary": {k: list(v) for k, v in self.primary.items()},
            "secondary": {k: list(v) for k, v in self.secondary.items()},
        }

    def group_ids(self) -> set[str]:
        """Get every group id referenced by either table."""
        referenced: set[str] = set()
        for table in (self.primary, self.secondary):
            for group_ids in table.values():
                referenced.update(group_ids)
        return referenced

    def validate(
        self,
        catalog: FrameworkCatalog,
        known_primary: Collection[str] | None = None,
        known_secondary: Collection[str] | None = None,
    ) -> None:
        """
        Check the crosswalk against a catalog and, optionally, the source taxonomies.

        Args:
            catalog: Framework catalog the crosswalk targets.
            known_primary: Known primary categories (skipped if None).
            known_secondary: Known secondary classifications (skipped if None).

        Raises:
            CatalogError: If a referenced group or category does not exist.
        """
        catalog_ids = set(catalog.group_ids())
        unknown_groups = sorted(self.group_ids() - catalog_ids)
        if unknown_groups:
            raise CatalogError(
                f"Crosswalk for {catalog.id} references unknown groups: "
                f"{', '.join(unknown_groups)}"
            )

        if known_primary is not None:
            unknown = sorted(set(self.primary) - set(known_primary))
            if unknown:
                raise CatalogError(
                    f"Crosswalk for {catalog.id} references unknown categories: "
                    f"{', '.join(unknown)}"
                )

        if known_secondary is not None:
            unknown = sorted(set(self.secondary) - set(known_secondary))
            if unknown:
                raise CatalogError(
                    f"Crosswalk for {catalog.id} references unknown classifications: "
                    f"{', '.join(unknown)}"
                )


class InventoryMapper:
    """
    Maps inventory objects to one framework's control groups.

    Example:
        mapper = InventoryMapper(catalog, crosswalk)

        # Groups a single object qualifies for
        group_ids = mapper.map_object(obj)

        # Every group id -> objects mapped to it (empty lists included)
        mapping = mapper.build_mapping(objects)

    Attributes:
        catalog: Target framework catalog.
        crosswalk: Crosswalk tables for the framework.
    """

    def __init__(self, catalog: FrameworkCatalog, crosswalk: Crosswalk) -> None:
        """
        Initialize the mapper.

        Raises:
            CatalogError: If the crosswalk references groups not in the catalog.
        """
        crosswalk.validate(catalog)
        self.catalog = catalog
        self.crosswalk = crosswalk

    def map_object(self, obj: InventoryObject) -> frozenset[str]:
        """
        Get the group ids an object maps to.

        Args:
            obj: Inventory object.

        Returns:
            Union of both crosswalks applied to the object's categories and
            secondary classifications.
        """
        group_ids: set[str] = set()
        for category in obj.categories:
            group_ids.update(self.crosswalk.primary.get(category, ()))
        for classification in obj.secondary_classifications:
            group_ids.update(self.crosswalk.secondary.get(classification, ()))
        return frozenset(group_ids)

    def build_mapping(
        self, objects: Iterable[InventoryObject]
    ) -> dict[str, list[InventoryObject]]:
        """
        Build the full group -> objects mapping.

        Every catalog group id is present as a key, in catalog order, even
        when no object maps to it. Within each list, objects keep their
        input order.

        Args:
            objects: Inventory objects.

        Returns:
            Dictionary of group id to mapped objects.
        """
        mapping: dict[str, list[InventoryObject]] = {
            group_id: [] for group_id in self.catalog.group_ids()
        }
        object_count = 0
        for obj in objects:
            object_count += 1
            for group_id in self.map_object(obj):
                mapping[group_id].append(obj)

        logger.debug(
            "Mapped %d objects onto %s (%d groups without objects)",
            object_count,
            self.catalog.id,
            sum(1 for v in mapping.values() if not v),
        )
        return mapping

    def get_unmapped_objects(
        self, objects: Sequence[InventoryObject]
    ) -> list[InventoryObject]:
        """Get objects that do not map to any group in this framework."""
        return [obj for obj in objects if not self.map_object(obj)]


def load_inventory(data: Any) -> list[InventoryObject]:
    """
    Parse an inventory payload.

    Args:
        data: A list of object dictionaries, or a mapping with an ``objects`` list.

    Returns:
        List of InventoryObject.
    """
    if isinstance(data, Mapping):
        data = data.get("objects", [])
    return [
        item if isinstance(item, InventoryObject) else InventoryObject.from_dict(item)
        for item in data or []
    ]

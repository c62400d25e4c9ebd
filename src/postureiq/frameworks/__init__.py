"""
Framework catalogs, crosswalks, and the inventory mapping engine.

Catalogs:
    Static structure of a framework: optional sections, control groups, and
    safeguards. Integrity is checked when a catalog is built.

Built-in Frameworks:
    - cis_v8: CIS Controls v8 (18 control groups)
    - nist_csf_2: NIST CSF 2.0 (6 functions, 22 categories)

Mapping Engine:
    The InventoryMapper maps inventory objects to control groups through two
    OR'd crosswalks: product category -> groups and NIST 800-53 family -> groups.
"""

from postureiq.frameworks.builtin import (
    CIS_V8_CROSSWALK,
    CIS_V8_ID,
    NIST_80053_FAMILIES,
    NIST_CSF_2_CROSSWALK,
    NIST_CSF_2_ID,
    PRODUCT_FAMILIES,
    FrameworkRegistry,
    get_builtin_framework,
    get_builtin_framework_ids,
)
from postureiq.frameworks.catalog import (
    CatalogError,
    ControlGroup,
    FrameworkCatalog,
    Safeguard,
    Section,
    load_catalog,
)
from postureiq.frameworks.mapping_engine import (
    Crosswalk,
    InventoryMapper,
    InventoryObject,
    load_inventory,
)

__all__ = [
    # Catalog
    "Safeguard",
    "ControlGroup",
    "Section",
    "FrameworkCatalog",
    "CatalogError",
    "load_catalog",
    # Built-ins
    "FrameworkRegistry",
    "get_builtin_framework",
    "get_builtin_framework_ids",
    "CIS_V8_ID",
    "NIST_CSF_2_ID",
    "CIS_V8_CROSSWALK",
    "NIST_CSF_2_CROSSWALK",
    "PRODUCT_FAMILIES",
    "NIST_80053_FAMILIES",
    # Mapping Engine
    "Crosswalk",
    "InventoryMapper",
    "InventoryObject",
    "load_inventory",
]

"""
Tests for framework catalogs, crosswalks and the inventory mapping engine.

Uses Python's unittest module.
Tests catalog integrity checks, the two-crosswalk union, built-in
frameworks, catalog files and the framework registry.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import yaml

from postureiq.assessment.engine import PostureEngine
from postureiq.frameworks.builtin import (
    CIS_V8_CROSSWALK,
    CIS_V8_ID,
    NIST_80053_FAMILIES,
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


def _synthetic_catalog() -> FrameworkCatalog:
    groups = [ControlGroup(id=gid, name=f"Group {gid}") for gid in ("G1", "G2", "G3")]
    safeguards = [
        Safeguard(id="G1.1", name="One", group_id="G1", applicability_tiers=frozenset({1})),
        Safeguard(id="G1.2", name="Two", group_id="G1", applicability_tiers=frozenset({2, 3})),
        Safeguard(id="G2.1", name="Three", group_id="G2"),
    ]
    return FrameworkCatalog.build("synthetic", "Synthetic", groups, safeguards)


class TestSafeguard(unittest.TestCase):
    """Tests for Safeguard."""

    def test_empty_tiers_rejected(self) -> None:
        """Test that an empty tier set is rejected."""
        with self.assertRaises(CatalogError):
            Safeguard(id="S1", name="S1", group_id="G1", applicability_tiers=frozenset())

    def test_non_positive_tiers_rejected(self) -> None:
        """Test that tiers must be positive integers."""
        with self.assertRaises(CatalogError):
            Safeguard(id="S1", name="S1", group_id="G1", applicability_tiers=frozenset({0}))

    def test_from_dict(self) -> None:
        """Test parsing a safeguard definition."""
        safeguard = Safeguard.from_dict(
            {"id": "CIS-1.1", "name": "Inventory", "group_id": "CIS-1", "tiers": [1, 2, 3]}
        )

        self.assertEqual(safeguard.applicability_tiers, frozenset({1, 2, 3}))
        self.assertEqual(safeguard.to_dict()["tiers"], [1, 2, 3])

    def test_from_dict_missing_group(self) -> None:
        """Test that a definition without group_id is a catalog error."""
        with self.assertRaises(CatalogError):
            Safeguard.from_dict({"id": "S1"})

    def test_from_dict_scalar_tiers(self) -> None:
        """Test that a non-list tiers value is a catalog error."""
        with self.assertRaises(CatalogError):
            Safeguard.from_dict({"id": "S1", "group_id": "G1", "tiers": 1})


class TestFrameworkCatalog(unittest.TestCase):
    """Tests for FrameworkCatalog construction and queries."""

    def test_build_attaches_safeguards(self) -> None:
        """Test that safeguards end up in their groups."""
        catalog = _synthetic_catalog()

        self.assertEqual(catalog.group_ids(), ["G1", "G2", "G3"])
        self.assertEqual([s.id for s in catalog.get_group("G1").safeguards], ["G1.1", "G1.2"])
        self.assertEqual(catalog.get_group("G3").safeguards, ())
        self.assertEqual(catalog.get_safeguard("G2.1").name, "Three")

    def test_dangling_group_fails_fast(self) -> None:
        """Test that a safeguard referencing a missing group is rejected."""
        with self.assertRaises(CatalogError):
            FrameworkCatalog.build(
                "bad",
                "Bad",
                [ControlGroup(id="G1", name="G1")],
                [Safeguard(id="S1", name="S1", group_id="G9")],
            )

    def test_duplicate_group_ids(self) -> None:
        """Test that duplicate group ids are rejected."""
        with self.assertRaises(CatalogError):
            FrameworkCatalog.build(
                "bad", "Bad", [ControlGroup(id="G1", name="A"), ControlGroup(id="G1", name="B")]
            )

    def test_duplicate_safeguard_ids(self) -> None:
        """Test that duplicate safeguard ids are rejected."""
        with self.assertRaises(CatalogError):
            FrameworkCatalog.build(
                "bad",
                "Bad",
                [ControlGroup(id="G1", name="G1"), ControlGroup(id="G2", name="G2")],
                [
                    Safeguard(id="S1", name="S1", group_id="G1"),
                    Safeguard(id="S1", name="S1", group_id="G2"),
                ],
            )

    def test_unknown_section(self) -> None:
        """Test that a group may not reference an unknown section."""
        with self.assertRaises(CatalogError):
            FrameworkCatalog.build(
                "bad",
                "Bad",
                [ControlGroup(id="G1", name="G1", section_id="XX")],
                sections=[Section(id="PR", name="Protect")],
            )

    def test_safeguards_in_tier(self) -> None:
        """Test catalog listing with the shared tier predicate."""
        catalog = _synthetic_catalog()

        self.assertEqual(
            [s.id for s in catalog.safeguards_in_tier(1)], ["G1.1", "G2.1"]
        )
        self.assertEqual(len(catalog.safeguards_in_tier(None)), 3)

    def test_with_safeguards(self) -> None:
        """Test extending a catalog returns a new catalog."""
        catalog = _synthetic_catalog()
        extended = catalog.with_safeguards(
            [Safeguard(id="G3.1", name="Four", group_id="G3")]
        )

        self.assertEqual(len(extended.all_safeguards()), 4)
        self.assertEqual(len(catalog.all_safeguards()), 3)

    def test_dict_round_trip(self) -> None:
        """Test that to_dict output rebuilds the same catalog."""
        catalog = _synthetic_catalog()
        restored = FrameworkCatalog.from_dict(catalog.to_dict())

        self.assertEqual(restored.group_ids(), catalog.group_ids())
        self.assertEqual(
            [s.id for s in restored.all_safeguards()],
            [s.id for s in catalog.all_safeguards()],
        )
        self.assertEqual(restored.get_statistics(), catalog.get_statistics())


class TestCrosswalk(unittest.TestCase):
    """Tests for Crosswalk validation."""

    def test_unknown_group_rejected(self) -> None:
        """Test that a crosswalk may only reference catalog groups."""
        crosswalk = Crosswalk(primary={"BISO": ("G9",)})

        with self.assertRaises(CatalogError):
            crosswalk.validate(_synthetic_catalog())

    def test_unknown_category_rejected(self) -> None:
        """Test category keys are checked against a given taxonomy."""
        crosswalk = Crosswalk(primary={"Not A Family": ("G1",)})

        with self.assertRaises(CatalogError):
            crosswalk.validate(_synthetic_catalog(), known_primary=PRODUCT_FAMILIES)

    def test_unknown_classification_rejected(self) -> None:
        """Test secondary keys are checked against a given taxonomy."""
        crosswalk = Crosswalk(secondary={"ZZ": ("G1",)})

        with self.assertRaises(CatalogError):
            crosswalk.validate(_synthetic_catalog(), known_secondary=NIST_80053_FAMILIES)

    def test_mapper_validates_at_construction(self) -> None:
        """Test that an invalid crosswalk cannot build a mapper."""
        with self.assertRaises(CatalogError):
            InventoryMapper(_synthetic_catalog(), Crosswalk(secondary={"AC": ("NOPE",)}))


class TestInventoryObject(unittest.TestCase):
    """Tests for InventoryObject parsing."""

    def test_from_export_keys(self) -> None:
        """Test parsing the inventory export field names."""
        obj = InventoryObject.from_dict({
            "id": "obj-1",
            "listName": "EDR",
            "productFamilies": ["Insider Risk"],
            "nistFamilies": ["SI", "AU"],
            "controlClassification": "Formal",
            "compliancePercent": 87,
        })

        self.assertEqual(obj.name, "EDR")
        self.assertEqual(obj.categories, ("Insider Risk",))
        self.assertEqual(obj.secondary_classifications, ("SI", "AU"))
        self.assertTrue(obj.is_formally_classified)
        self.assertEqual(obj.compliance_percent, 87.0)
        self.assertTrue(obj.has_measured_compliance)

    def test_from_snake_case(self) -> None:
        """Test parsing snake_case keys with missing compliance."""
        obj = InventoryObject.from_dict({
            "id": "obj-2",
            "name": "Wiki",
            "categories": [],
            "is_formally_classified": False,
        })

        self.assertIsNone(obj.compliance_percent)
        self.assertFalse(obj.has_measured_compliance)
        self.assertFalse(obj.is_formally_classified)

    def test_informal_classification(self) -> None:
        """Test that any classification other than Formal is informal."""
        obj = InventoryObject.from_dict({"id": "o", "controlClassification": "Informal"})
        self.assertFalse(obj.is_formally_classified)

    def test_from_camel_case(self) -> None:
        """Test parsing camelCase keys, including the measured-compliance flag."""
        obj = InventoryObject.from_dict({
            "id": "obj-3",
            "secondaryClassifications": ["AC"],
            "isFormallyClassified": True,
            "hasMeasuredCompliance": True,
        })

        self.assertEqual(obj.secondary_classifications, ("AC",))
        self.assertTrue(obj.is_formally_classified)
        self.assertIsNone(obj.compliance_percent)
        self.assertTrue(obj.has_measured_compliance)
        self.assertTrue(obj.to_dict()["has_measured_compliance"])

    def test_measured_flag_snake_case(self) -> None:
        """Test that has_measured_compliance is read without a percentage."""
        obj = InventoryObject.from_dict({
            "id": "obj-4",
            "is_formally_classified": True,
            "has_measured_compliance": True,
        })

        self.assertTrue(obj.has_measured_compliance)
        self.assertFalse(InventoryObject(id="obj-5").has_measured_compliance)

    def test_load_inventory_shapes(self) -> None:
        """Test loading a list and an {"objects": [...]} payload."""
        items = [{"id": "a"}, {"id": "b"}]

        self.assertEqual([o.id for o in load_inventory(items)], ["a", "b"])
        self.assertEqual([o.id for o in load_inventory({"objects": items})], ["a", "b"])
        self.assertEqual(load_inventory({}), [])


class TestInventoryMapper(unittest.TestCase):
    """Tests for InventoryMapper."""

    def setUp(self) -> None:
        """Set up a mapper over the synthetic catalog."""
        self.catalog = _synthetic_catalog()
        self.crosswalk = Crosswalk(
            primary={"Data Protection": ("G1", "G2")},
            secondary={"SC": ("G2",), "AU": ("G1",)},
        )
        self.mapper = InventoryMapper(self.catalog, self.crosswalk)

    def test_union_without_double_counting(self) -> None:
        """Test that both crosswalks are OR'd with set semantics."""
        obj = InventoryObject(
            id="o1", categories=("Data Protection",), secondary_classifications=("SC", "AU")
        )

        self.assertEqual(self.mapper.map_object(obj), frozenset({"G1", "G2"}))

        mapping = self.mapper.build_mapping([obj])
        self.assertEqual(len(mapping["G1"]), 1)
        self.assertEqual(len(mapping["G2"]), 1)

    def test_unknown_keys_contribute_nothing(self) -> None:
        """Test that unknown categories map nowhere."""
        obj = InventoryObject(id="o1", categories=("Nope",), secondary_classifications=("ZZ",))

        self.assertEqual(self.mapper.map_object(obj), frozenset())
        self.assertEqual(self.mapper.get_unmapped_objects([obj]), [obj])

    def test_every_group_present_in_order(self) -> None:
        """Test that every catalog group is a key, including empty ones."""
        mapping = self.mapper.build_mapping([])

        self.assertEqual(list(mapping), ["G1", "G2", "G3"])
        self.assertTrue(all(v == [] for v in mapping.values()))

    def test_input_order_preserved(self) -> None:
        """Test that objects keep input order within a group."""
        objects = [
            InventoryObject(id=f"o{i}", secondary_classifications=("SC",)) for i in range(5)
        ]
        mapping = self.mapper.build_mapping(objects)

        self.assertEqual([o.id for o in mapping["G2"]], ["o0", "o1", "o2", "o3", "o4"])


class TestBuiltinFrameworks(unittest.TestCase):
    """Tests for the built-in catalogs and crosswalks."""

    def test_builtin_ids(self) -> None:
        """Test the built-in framework ids."""
        self.assertEqual(get_builtin_framework_ids(), [CIS_V8_ID, NIST_CSF_2_ID])
        self.assertIsNone(get_builtin_framework("unknown"))

    def test_cis_structure(self) -> None:
        """Test CIS Controls v8 has 18 groups."""
        catalog, _ = get_builtin_framework(CIS_V8_ID)

        self.assertEqual(len(catalog.groups), 18)
        self.assertEqual(catalog.group_ids()[0], "CIS-1")
        self.assertEqual(catalog.group_ids()[-1], "CIS-18")
        self.assertEqual(catalog.sections, ())

    def test_csf_structure(self) -> None:
        """Test NIST CSF 2.0 has 6 functions and 22 categories."""
        catalog, _ = get_builtin_framework(NIST_CSF_2_ID)

        self.assertEqual([s.id for s in catalog.sections], ["GV", "ID", "PR", "DE", "RS", "RC"])
        self.assertEqual(len(catalog.groups), 22)
        self.assertEqual(len(catalog.groups_in_section("PR")), 5)

    def test_crosswalk_keys_are_known(self) -> None:
        """Test built-in crosswalks only use the known taxonomies."""
        for framework_id in get_builtin_framework_ids():
            catalog, crosswalk = get_builtin_framework(framework_id)
            crosswalk.validate(catalog, PRODUCT_FAMILIES, NIST_80053_FAMILIES)

    def test_cis_mapping(self) -> None:
        """Test a realistic object against the CIS crosswalks."""
        catalog, crosswalk = get_builtin_framework(CIS_V8_ID)
        mapper = InventoryMapper(catalog, crosswalk)
        obj = InventoryObject(
            id="iam",
            categories=("Identity & Access Management",),
            secondary_classifications=("AC", "IA"),
        )

        self.assertEqual(mapper.map_object(obj), frozenset({"CIS-5", "CIS-6"}))
        self.assertEqual(CIS_V8_CROSSWALK.secondary["PE"], ())


class TestCatalogFiles(unittest.TestCase):
    """Tests for load_catalog and FrameworkRegistry."""

    def setUp(self) -> None:
        """Create a temporary directory for catalog files."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        """Clean up temporary files."""
        self.temp_dir.cleanup()

    def _write(self, name: str, data: dict) -> Path:
        path = self.path / name
        with open(path, "w") as f:
            yaml.safe_dump(data, f)
        return path

    def test_standalone_catalog(self) -> None:
        """Test loading a self-contained catalog with its crosswalk."""
        path = self._write("custom.yaml", {
            "framework": {"id": "custom", "name": "Custom"},
            "groups": [{"id": "C1", "name": "First"}, {"id": "C2", "name": "Second"}],
            "safeguards": [{"id": "C1.1", "name": "Do it", "group_id": "C1", "tiers": [1]}],
            "crosswalk": {"primary": {"BISO": ["C2"]}},
        })

        catalog, crosswalk = load_catalog(path)

        self.assertEqual(catalog.id, "custom")
        self.assertEqual(catalog.get_statistics()["safeguards"], 1)
        self.assertEqual(crosswalk.primary["BISO"], ("C2",))

    def test_extends_builtin(self) -> None:
        """Test adding safeguards on top of a built-in catalog."""
        path = self._write("cis.yaml", {
            "extends": "cis_v8",
            "safeguards": [
                {"id": "CIS-1.1", "name": "Asset inventory", "group_id": "CIS-1", "tiers": [1, 2, 3]},
                {"id": "CIS-18.1", "name": "Pen test program", "group_id": "CIS-18", "tiers": [2, 3]},
            ],
        })

        catalog, crosswalk = load_catalog(path)

        self.assertEqual(catalog.id, "cis_v8")
        self.assertEqual(len(catalog.groups), 18)
        self.assertEqual(len(catalog.all_safeguards()), 2)
        self.assertIs(crosswalk, CIS_V8_CROSSWALK)

    def test_extends_with_sections(self) -> None:
        """Test that an extending file can add sections for its own groups."""
        path = self._write("cis.yaml", {
            "extends": "cis_v8",
            "sections": [{"id": "X", "name": "Extras"}],
            "groups": [{"id": "G", "name": "Local", "section": "X"}],
            "safeguards": [{"id": "G.1", "name": "Local one", "group_id": "G", "tiers": [1]}],
        })

        catalog, crosswalk = load_catalog(path)

        self.assertEqual(catalog.get_section("X").name, "Extras")
        self.assertEqual(catalog.get_group("G").section_id, "X")
        self.assertEqual(len(catalog.groups), 19)

        assessment = PostureEngine(catalog, crosswalk).assess(
            assessments={"G.1": {"policy": "approved_documented", "implementation": "all_systems"}}
        )
        rollups = {s.section_id: s for s in assessment.sections}
        self.assertEqual(rollups["X"].group_ids, ("G",))
        self.assertEqual(rollups["X"].level, 5)

    def test_extends_sectioned_builtin(self) -> None:
        """Test adding and renaming sections on a catalog that already has them."""
        path = self._write("csf.yaml", {
            "extends": "nist_csf_2",
            "sections": [
                {"id": "GV", "name": "Governance"},
                {"id": "AI", "name": "AI Risk"},
            ],
            "groups": [{"id": "AI.MD", "name": "Model Inventory", "section": "AI"}],
        })

        catalog, _ = load_catalog(path)

        self.assertEqual([s.id for s in catalog.sections], ["GV", "ID", "PR", "DE", "RS", "RC", "AI"])
        self.assertEqual(catalog.get_section("GV").name, "Governance")
        self.assertEqual(catalog.get_group("AI.MD").section_id, "AI")

    def test_malformed_entries(self) -> None:
        """Test that malformed group and safeguard entries are catalog errors."""
        no_id = self._write("noid.yaml", {
            "framework": {"id": "x"},
            "groups": [{"name": "Anonymous"}],
        })
        with self.assertRaises(CatalogError):
            load_catalog(no_id)

        extending_no_id = self._write("extnoid.yaml", {
            "extends": "cis_v8",
            "groups": [{"name": "Anonymous"}],
        })
        with self.assertRaises(CatalogError):
            load_catalog(extending_no_id)

        scalar_tiers = self._write("tiers.yaml", {
            "framework": {"id": "x"},
            "groups": [{"id": "G1"}],
            "safeguards": [{"id": "G1.1", "group_id": "G1", "tiers": 1}],
        })
        with self.assertRaises(CatalogError):
            load_catalog(scalar_tiers)

        with self.assertRaises(CatalogError):
            load_catalog(self._write("scalar.yaml", {"framework": {"id": "x"}, "groups": ["G1"]}))

    def test_invalid_files(self) -> None:
        """Test unreadable, malformed and inconsistent catalog files."""
        with self.assertRaises(CatalogError):
            load_catalog(self.path / "missing.yaml")

        bad_yaml = self.path / "bad.yaml"
        bad_yaml.write_text("framework: [unclosed")
        with self.assertRaises(CatalogError):
            load_catalog(bad_yaml)

        dangling = self._write("dangling.yaml", {
            "framework": {"id": "x"},
            "groups": [{"id": "G1"}],
            "crosswalk": {"secondary": {"AC": ["G2"]}},
        })
        with self.assertRaises(CatalogError):
            load_catalog(dangling)

        with self.assertRaises(CatalogError):
            load_catalog(self._write("base.yaml", {"extends": "nope"}))

    def test_registry(self) -> None:
        """Test the registry resolves built-ins and configured files."""
        path = self._write("custom.json", {
            "framework": {"id": "custom", "name": "Custom"},
            "groups": [{"id": "C1"}],
        })
        registry = FrameworkRegistry.from_paths([path])

        self.assertIn("custom", registry)
        self.assertIn(CIS_V8_ID, registry)
        self.assertEqual(registry.get("custom")[0].name, "Custom")
        with self.assertRaises(CatalogError):
            registry.get("missing")

    def test_registry_without_builtins(self) -> None:
        """Test an empty registry."""
        registry = FrameworkRegistry(include_builtins=False)

        self.assertEqual(registry.ids(), [])


if __name__ == "__main__":
    unittest.main()

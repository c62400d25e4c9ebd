"""
Tests for the posture assessment engine.

Uses Python's unittest module.
Tests the full pipeline from inventory objects, safeguard assessments and
overrides to effective maturity, section roll-ups and the reporting payload.
"""

from __future__ import annotations

import json
import unittest

from postureiq.assessment.engine import PostureEngine, round_half_up
from postureiq.assessment.store import AssessmentStore
from postureiq.frameworks.builtin import CIS_V8_ID, get_builtin_framework
from postureiq.frameworks.catalog import ControlGroup, FrameworkCatalog, Safeguard, Section
from postureiq.frameworks.mapping_engine import Crosswalk, InventoryObject
from postureiq.scoring.override_resolver import MaturitySource, Override

FULL = {"policy": "approved_documented", "implementation": "all_systems"}


def _three_group_catalog(with_sections: bool = False) -> FrameworkCatalog:
    sections = []
    section_of = {"A": None, "B": None, "C": None}
    if with_sections:
        sections = [Section(id="S1", name="First"), Section(id="S2", name="Second")]
        section_of = {"A": "S1", "B": "S1", "C": "S2"}

    groups = [
        ControlGroup(id=gid, name=f"Group {gid}", section_id=section_of[gid])
        for gid in ("A", "B", "C")
    ]
    safeguards = [
        Safeguard(
            id=f"{gid}.{n}",
            name=f"{gid} safeguard {n}",
            group_id=gid,
            applicability_tiers=frozenset({n}),
        )
        for gid in ("A", "B", "C")
        for n in (1, 2)
    ]
    return FrameworkCatalog.build("three", "Three Groups", groups, safeguards, sections)


CROSSWALK = Crosswalk(primary={"BISO": ("B",)}, secondary={"AU": ("A",)})

FORMAL_TRACKED = InventoryObject(
    id="obj-1",
    name="Vendor risk register",
    categories=("BISO",),
    is_formally_classified=True,
    compliance_percent=72.0,
)


class TestEndToEnd(unittest.TestCase):
    """Tests for the three-group scenario covering every maturity source."""

    def setUp(self) -> None:
        """Assess A from safeguards, B from inventory, C from an override."""
        self.engine = PostureEngine(_three_group_catalog(), CROSSWALK)
        self.assessment = self.engine.assess(
            objects=[FORMAL_TRACKED],
            assessments={"A.1": FULL, "A.2": FULL},
            overrides={"C": Override(group_id="C", level=4)},
        )

    def test_overall_reflects_only_assessed_group(self) -> None:
        """Test that the safeguard overall averages group A alone."""
        overall = self.assessment.result.overall

        self.assertAlmostEqual(overall.score, 1.0)
        self.assertEqual(overall.maturity, 5)
        self.assertEqual(overall.assessed_count, 2)
        self.assertEqual(overall.total_safeguards, 6)

    def test_group_a_from_safeguards(self) -> None:
        """Test group A resolves from its safeguards."""
        group = self.assessment.get_group("A")

        self.assertEqual(group.effective_maturity, 5)
        self.assertEqual(group.source, MaturitySource.SAFEGUARDS)
        self.assertEqual(group.result.assessed_count, 2)

    def test_group_b_from_auto(self) -> None:
        """Test group B falls back to the auto estimate."""
        group = self.assessment.get_group("B")

        self.assertEqual(group.effective_maturity, 2)
        self.assertEqual(group.source, MaturitySource.AUTO)
        self.assertEqual(group.auto_maturity, 2)
        self.assertEqual(group.result.assessed_count, 0)
        self.assertEqual([o.id for o in group.mapped_objects], ["obj-1"])

    def test_group_c_from_override(self) -> None:
        """Test group C takes its override regardless of other state."""
        group = self.assessment.get_group("C")

        self.assertEqual(group.effective_maturity, 4)
        self.assertEqual(group.source, MaturitySource.OVERRIDE)
        self.assertTrue(group.is_blind_spot)

    def test_effective_score(self) -> None:
        """Test the mean of effective maturities, rounded to one decimal."""
        self.assertEqual(self.assessment.effective_score, 3.7)
        self.assertEqual(self.assessment.effective_level, 4)

    def test_blind_spots(self) -> None:
        """Test groups without mapped objects are blind spots."""
        self.assertEqual([g.group_id for g in self.assessment.blind_spots], ["A", "C"])

    def test_statistics(self) -> None:
        """Test summary counts."""
        stats = self.assessment.statistics

        self.assertEqual(stats["total_groups"], 3)
        self.assertEqual(stats["assessed_groups"], 1)
        self.assertEqual(
            stats["groups_by_source"], {"override": 1, "safeguards": 1, "auto": 1}
        )
        self.assertEqual(stats["blind_spots"], 2)
        self.assertEqual(stats["mapped_objects"], 1)
        self.assertEqual(stats["unmapped_objects"], 0)

    def test_payload_is_serializable(self) -> None:
        """Test the reporting payload is plain JSON."""
        payload = self.assessment.to_dict()
        text = json.dumps(payload)

        self.assertIn('"source": "override"', text)
        self.assertEqual(payload["framework"]["id"], "three")
        self.assertEqual(payload["groups"][1]["mapped_objects"][0]["name"], "Vendor risk register")
        self.assertEqual(payload["groups"][2]["override"]["level"], 4)


class TestPostureEngine(unittest.TestCase):
    """Tests for PostureEngine options and edge cases."""

    def test_no_inputs(self) -> None:
        """Test an assessment with no data at all."""
        assessment = PostureEngine(_three_group_catalog()).assess()

        self.assertEqual(assessment.effective_score, 0.0)
        self.assertEqual(assessment.effective_level, 0)
        self.assertTrue(all(g.source == MaturitySource.AUTO for g in assessment.groups))
        self.assertEqual(len(assessment.blind_spots), 3)

    def test_override_formats(self) -> None:
        """Test overrides given as mappings and bare levels."""
        assessment = PostureEngine(_three_group_catalog()).assess(
            overrides={"A": {"level": 3, "note": "reviewed"}, "B": 1}
        )

        self.assertEqual(assessment.get_group("A").effective_maturity, 3)
        self.assertEqual(assessment.get_group("A").override.note, "reviewed")
        self.assertEqual(assessment.get_group("B").effective_maturity, 1)
        self.assertEqual(assessment.get_group("B").source, MaturitySource.OVERRIDE)

    def test_tier_filter_fully_excluding_group_uses_auto(self) -> None:
        """Test a group with no applicable safeguards is not assessed."""
        catalog = FrameworkCatalog.build(
            "tiered",
            "Tiered",
            [ControlGroup(id="G", name="G")],
            [Safeguard(id="G.1", name="G.1", group_id="G", applicability_tiers=frozenset({3}))],
        )
        engine = PostureEngine(catalog, Crosswalk(primary={"BISO": ("G",)}))
        assessment = engine.assess(
            objects=[FORMAL_TRACKED],
            assessments={"G.1": FULL},
            tier_filter=1,
        )
        group = assessment.get_group("G")

        self.assertEqual(group.result.total_applicable, 0)
        self.assertEqual(group.result.assessed_count, 0)
        self.assertEqual(group.source, MaturitySource.AUTO)
        self.assertEqual(group.effective_maturity, 2)
        self.assertEqual(assessment.tier_filter, 1)

    def test_count_zero_compliance(self) -> None:
        """Test the zero-compliance option reaches the auto estimator."""
        obj = InventoryObject(
            id="z", categories=("BISO",), is_formally_classified=True, compliance_percent=0.0
        )
        strict = PostureEngine(_three_group_catalog(), CROSSWALK)
        lenient = PostureEngine(_three_group_catalog(), CROSSWALK, count_zero_compliance=True)

        self.assertEqual(strict.assess([obj]).get_group("B").effective_maturity, 1)
        self.assertEqual(lenient.assess([obj]).get_group("B").effective_maturity, 2)

    def test_unmapped_objects_reported(self) -> None:
        """Test objects that map nowhere are listed."""
        stray = InventoryObject(id="stray", categories=("Nothing",))
        assessment = PostureEngine(_three_group_catalog(), CROSSWALK).assess([stray])

        self.assertEqual([o.id for o in assessment.unmapped_objects], ["stray"])

    def test_section_rollups(self) -> None:
        """Test effective maturity rolled up per section."""
        engine = PostureEngine(_three_group_catalog(with_sections=True), CROSSWALK)
        assessment = engine.assess(
            objects=[FORMAL_TRACKED],
            assessments={"A.1": FULL, "A.2": FULL},
            overrides={"C": Override(group_id="C", level=4)},
        )
        first, second = assessment.sections

        self.assertEqual(first.group_ids, ("A", "B"))
        self.assertEqual(first.score, 3.5)
        self.assertEqual(first.level, 4)
        self.assertEqual(second.score, 4.0)
        self.assertEqual(second.to_dict()["maturity_label"], "Managed")

    def test_builtin_framework_with_store(self) -> None:
        """Test the engine reading a store snapshot over a built-in framework."""
        catalog, crosswalk = get_builtin_framework(CIS_V8_ID)
        catalog = catalog.with_safeguards([
            Safeguard(id="CIS-1.1", name="Asset inventory", group_id="CIS-1",
                      applicability_tiers=frozenset({1, 2, 3})),
        ])
        store = AssessmentStore()
        store.set_safeguard(CIS_V8_ID, "CIS-1.1", "fully_documented", "most_systems")
        store.set_override(CIS_V8_ID, "CIS-18", 3)
        snapshot = store.snapshot(CIS_V8_ID)

        assessment = PostureEngine(catalog, crosswalk).assess(
            assessments=snapshot.assessments, overrides=snapshot.overrides
        )

        self.assertEqual(assessment.get_group("CIS-1").effective_maturity, 3)
        self.assertEqual(assessment.get_group("CIS-18").effective_maturity, 3)
        self.assertEqual(len(assessment.groups), 18)

    def test_round_half_up(self) -> None:
        """Test rounding used for effective scores."""
        self.assertEqual(round_half_up(2.25), 2.3)
        self.assertEqual(round_half_up(2.35), 2.4)
        self.assertEqual(round_half_up(3.0), 3.0)


if __name__ == "__main__":
    unittest.main()

"""
Tests for the reports module.

Uses Python's unittest module.
Tests the JSON exporter payload and file output.
"""

from __future__ import annotations

import gzip
import json
import shutil
import tempfile
import unittest
from datetime import UTC, datetime
from pathlib import Path

from postureiq.analysis.gap_analyzer import GapAnalyzer
from postureiq.assessment.engine import PostureEngine
from postureiq.frameworks.catalog import ControlGroup, FrameworkCatalog, Safeguard
from postureiq.reports.json_exporter import (
    FORMAT_VERSION,
    ExportMetadata,
    ExportResult,
    JsonExporter,
)


def _assessment():
    catalog = FrameworkCatalog.build(
        "demo",
        "Demo",
        [ControlGroup(id="G1", name="One"), ControlGroup(id="G2", name="Two")],
        [Safeguard(id="G1.1", name="First", group_id="G1")],
    )
    assessments = {"G1.1": {"policy": "partial", "implementation": "some_systems"}}
    assessment = PostureEngine(catalog).assess(assessments=assessments, overrides={"G2": 5})
    return catalog, assessment


class TestExportMetadata(unittest.TestCase):
    """Tests for ExportMetadata."""

    def test_to_dict(self) -> None:
        """Test metadata conversion."""
        metadata = ExportMetadata(
            export_type="assessment",
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
            version="0.1.0",
            organization="Acme",
            framework_id="demo",
        )
        data = metadata.to_dict()

        self.assertEqual(data["timestamp"], "2024-01-01T00:00:00+00:00")
        self.assertEqual(data["organization"], "Acme")
        self.assertEqual(data["format_version"], FORMAT_VERSION)


class TestExportResult(unittest.TestCase):
    """Tests for ExportResult."""

    def test_failed_result_to_dict(self) -> None:
        """Test a failed result has no path."""
        result = ExportResult(
            success=False,
            path=None,
            size_bytes=0,
            record_count=0,
            export_type="assessment",
            compressed=False,
            error="disk full",
        )

        self.assertIsNone(result.to_dict()["path"])
        self.assertEqual(result.to_dict()["error"], "disk full")


class TestJsonExporter(unittest.TestCase):
    """Tests for JsonExporter."""

    def setUp(self) -> None:
        """Create a temporary directory and an assessment."""
        self.temp_dir = tempfile.mkdtemp()
        self.catalog, self.assessment = _assessment()
        self.exporter = JsonExporter(version="0.1.0", organization="Acme")

    def tearDown(self) -> None:
        """Clean up temporary directory."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_build_payload(self) -> None:
        """Test the assessment payload structure."""
        payload = self.exporter.build_payload(self.assessment)

        self.assertEqual(payload["metadata"]["export_type"], "assessment")
        self.assertEqual(payload["metadata"]["framework_id"], "demo")
        self.assertEqual(payload["scoring"]["policy_weight"], 0.4)
        self.assertEqual(payload["scoring"]["implementation_weight"], 0.6)
        self.assertEqual(payload["scoring"]["maturity_thresholds"][0], {"max_score": 0.10, "level": 0})
        self.assertNotIn("gaps", payload)

        groups = {g["group_id"]: g for g in payload["assessment"]["groups"]}
        self.assertEqual(groups["G1"]["source"], "safeguards")
        self.assertEqual(groups["G2"]["source"], "override")
        self.assertEqual(groups["G2"]["effective_maturity"], 5)

    def test_build_payload_with_gaps(self) -> None:
        """Test including a gap analysis."""
        gaps = GapAnalyzer(target_maturity=3).analyze(self.assessment, self.catalog)
        payload = self.exporter.build_payload(self.assessment, gaps=gaps)

        self.assertEqual(payload["metadata"]["export_type"], "full")
        self.assertEqual(payload["gaps"]["groups_with_gaps"], 1)
        self.assertEqual(payload["gaps"]["all_gaps"][0]["group_id"], "G1")

    def test_export_plain(self) -> None:
        """Test writing an uncompressed export."""
        result = self.exporter.export(self.assessment, Path(self.temp_dir))

        self.assertTrue(result.success)
        self.assertFalse(result.compressed)
        self.assertEqual(result.record_count, 2)
        self.assertTrue(result.path.name.endswith("_demo_assessment_export.json"))
        self.assertGreater(result.size_bytes, 0)

        with open(result.path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["metadata"]["organization"], "Acme")
        self.assertEqual(data["assessment"]["framework"]["id"], "demo")

    def test_export_compressed(self) -> None:
        """Test writing a gzip export with gaps."""
        gaps = GapAnalyzer(target_maturity=3).analyze(self.assessment, self.catalog)
        result = self.exporter.export(
            self.assessment, Path(self.temp_dir), gaps=gaps, compress=True
        )

        self.assertTrue(result.success)
        self.assertTrue(result.path.name.endswith("_full_export.json.gz"))
        self.assertEqual(result.record_count, 3)

        with gzip.open(result.path, "rt", encoding="utf-8") as f:
            data = json.load(f)
        self.assertIn("gaps", data)

    def test_export_creates_directory(self) -> None:
        """Test the output directory is created."""
        output_dir = Path(self.temp_dir) / "nested" / "exports"
        result = self.exporter.export(self.assessment, output_dir)

        self.assertTrue(result.success)
        self.assertTrue(output_dir.is_dir())

    def test_export_failure(self) -> None:
        """Test a write failure is reported rather than raised."""
        blocker = Path(self.temp_dir) / "not_a_dir"
        blocker.write_text("")

        result = self.exporter.export(self.assessment, blocker)

        self.assertFalse(result.success)
        self.assertIsNone(result.path)
        self.assertIsNotNone(result.error)


if __name__ == "__main__":
    unittest.main()

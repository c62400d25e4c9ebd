"""
JSON export of framework assessments.

Exports a machine-readable reporting payload: effective and safeguard-derived
scores, per-group maturity with its source, section rollups, mapped objects,
and (optionally) gap analysis. Every export carries a metadata block for
traceability.

Export Types:
    - assessment: Assessment payload only
    - full: Assessment payload plus gap analysis
"""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from postureiq.analysis.gap_analyzer import GapAnalysis
from postureiq.assessment.engine import FrameworkAssessment
from postureiq.scoring.maturity_calculator import MATURITY_THRESHOLDS
from postureiq.scoring.safeguard_scorer import IMPLEMENTATION_WEIGHT, POLICY_WEIGHT

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"


@dataclass
class ExportMetadata:
    """
    Metadata included in all exports.

    Attributes:
        export_type: Type of export (assessment, full).
        timestamp: When the export was created.
        version: PostureIQ version that created the export.
        organization: Organization name (from config).
        framework_id: Framework the payload describes.
    """

    export_type: str
    timestamp: datetime
    version: str
    organization: str | None = None
    framework_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "export_type": self.export_type,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
            "organization": self.organization,
            "framework_id": self.framework_id,
            "format_version": FORMAT_VERSION,
        }


@dataclass
class ExportResult:
    """
    Result of an export operation.

    Attributes:
        success: Whether the export completed successfully.
        path: Path to the exported file.
        size_bytes: Size of the exported file in bytes.
        record_count: Number of group and gap records exported.
        export_type: Type of export performed.
        compressed: Whether the file is compressed.
        error: Error message if export failed.
    """

    success: bool
    path: Path | None
    size_bytes: int
    record_count: int
    export_type: str
    compressed: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "path": str(self.path) if self.path else None,
            "size_bytes": self.size_bytes,
            "record_count": self.record_count,
            "export_type": self.export_type,
            "compressed": self.compressed,
            "error": self.error,
        }


class JsonExporter:
    """
    Exporter for JSON format assessment data.

    Example:
        exporter = JsonExporter(version="0.1.0", organization="Acme Corp")

        # Build the payload in memory
        payload = exporter.build_payload(assessment, gaps=gap_analysis)

        # Or write it to disk
        result = exporter.export(assessment, Path("./exports"), compress=True)

    Attributes:
        version: PostureIQ version string.
        organization: Organization name for metadata.
    """

    def __init__(
        self,
        version: str = "0.1.0",
        organization: str | None = None,
    ) -> None:
        """
        Initialize the JSON exporter.

        Args:
            version: PostureIQ version string for metadata.
            organization: Organization name for metadata.
        """
        self.version = version
        self.organization = organization

    def build_payload(
        self,
        assessment: FrameworkAssessment,
        gaps: GapAnalysis | None = None,
    ) -> dict[str, Any]:
        """
        Build the reporting payload for an assessment.

        Args:
            assessment: FrameworkAssessment from PostureEngine.
            gaps: Optional gap analysis to include.

        Returns:
            Plain, JSON-serializable dictionary.
        """
        metadata = ExportMetadata(
            export_type="full" if gaps is not None else "assessment",
            timestamp=datetime.now(UTC),
            version=self.version,
            organization=self.organization,
            framework_id=assessment.framework_id,
        )

        payload: dict[str, Any] = {
            "metadata": metadata.to_dict(),
            "scoring": {
                "policy_weight": POLICY_WEIGHT,
                "implementation_weight": IMPLEMENTATION_WEIGHT,
                "maturity_thresholds": [
                    {"max_score": upper, "level": level}
                    for upper, level in MATURITY_THRESHOLDS
                ],
            },
            "assessment": assessment.to_dict(),
        }
        if gaps is not None:
            payload["gaps"] = gaps.to_dict()
        return payload

    def export(
        self,
        assessment: FrameworkAssessment,
        output_dir: Path,
        gaps: GapAnalysis | None = None,
        compress: bool = False,
    ) -> ExportResult:
        """
        Export an assessment to a JSON file.

        Args:
            assessment: FrameworkAssessment from PostureEngine.
            output_dir: Directory to write export file.
            gaps: Optional gap analysis to include.
            compress: Whether to gzip compress the output.

        Returns:
            ExportResult with export details.
        """
        export_type = "full" if gaps is not None else "assessment"
        try:
            output_dir = Path(output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)

            export_data = self.build_payload(assessment, gaps)

            filename = self._generate_filename(
                assessment.framework_id, export_type, compress
            )
            filepath = output_dir / filename

            size_bytes = self._write_json(export_data, filepath, compress)

            record_count = len(assessment.groups) + (len(gaps.all_gaps) if gaps else 0)

            logger.info("Exported %s data to %s (%d bytes)", export_type, filepath, size_bytes)

            return ExportResult(
                success=True,
                path=filepath,
                size_bytes=size_bytes,
                record_count=record_count,
                export_type=export_type,
                compressed=compress,
            )

        except OSError as e:
            logger.error("Failed to export %s data: %s", export_type, e)
            return ExportResult(
                success=False,
                path=None,
                size_bytes=0,
                record_count=0,
                export_type=export_type,
                compressed=compress,
                error=str(e),
            )

    def _generate_filename(self, framework_id: str, export_type: str, compress: bool) -> str:
        """Generate filename with timestamp."""
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        extension = ".json.gz" if compress else ".json"
        return f"{timestamp}_{framework_id}_{export_type}_export{extension}"

    def _write_json(
        self,
        data: dict[str, Any],
        filepath: Path,
        compress: bool,
    ) -> int:
        """
        Write JSON data to file.

        Returns:
            Size of written file in bytes.
        """
        json_content = json.dumps(data, indent=2, default=str)

        if compress:
            with gzip.open(filepath, "wt", encoding="utf-8") as f:
                f.write(json_content)
        else:
            with open(filepath, "w", encoding="utf-8") as f:
                f.write(json_content)

        return filepath.stat().st_size

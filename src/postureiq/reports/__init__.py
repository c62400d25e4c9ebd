"""
Report generation for posture assessments.

Example:
    from postureiq.reports import JsonExporter

    exporter = JsonExporter(version="0.1.0", organization="Acme Corp")
    result = exporter.export(assessment, Path("./exports"), gaps=gap_analysis)
"""

from postureiq.reports.json_exporter import (
    ExportMetadata,
    ExportResult,
    JsonExporter,
)

__all__ = [
    "JsonExporter",
    "ExportMetadata",
    "ExportResult",
]

"""
Command-line interface for PostureIQ.

Provides commands for listing frameworks and status vocabularies, mapping
inventory, recording safeguard assessments and overrides, and producing
assessments, gap analyses and JSON exports.

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

from postureiq import __version__
from postureiq.assessment.store import STATE_FILENAME, AssessmentStore, StoreError
from postureiq.config.settings import ConfigurationError, Settings, load_config
from postureiq.frameworks.builtin import FrameworkRegistry
from postureiq.frameworks.catalog import CatalogError, FrameworkCatalog
from postureiq.frameworks.mapping_engine import Crosswalk, InventoryObject, load_inventory
from postureiq.scoring.safeguard_scorer import compute_safeguard_score, score_band
from postureiq.scoring.statuses import (
    IMPLEMENTATION_STATUSES,
    MATURITY_LEVELS,
    MAX_MATURITY,
    MIN_MATURITY,
    POLICY_STATUSES,
)

# Set up logging
logger = logging.getLogger(__name__)

# Global verbosity settings (set during main() based on args)
_quiet_mode = False
_verbose_level = 0


def set_output_mode(quiet: bool = False, verbose: int = 0) -> None:
    """
    Set the output mode for the CLI.

    Args:
        quiet: If True, suppress non-essential output.
        verbose: Verbosity level (0=normal, 1+=verbose).
    """
    global _quiet_mode, _verbose_level
    _quiet_mode = quiet
    _verbose_level = verbose


def output(message: str = "", force: bool = False) -> None:
    """
    Print a message to stdout, respecting quiet mode.

    Args:
        message: The message to print.
        force: If True, print even in quiet mode (for essential output like JSON/CSV).
    """
    if force or not _quiet_mode:
        print(message)


def output_verbose(message: str, level: int = 1) -> None:
    """Print a message only if verbosity is at least ``level``."""
    if _verbose_level >= level and not _quiet_mode:
        print(message)


def output_error(message: str) -> None:
    """Print an error message (always shown, even in quiet mode)."""
    print(message, file=sys.stderr)


def format_as_csv(headers: list[str], rows: list[list[Any]]) -> str:
    """
    Format data as CSV string.

    Args:
        headers: Column headers.
        rows: List of row data (each row is a list of values).

    Returns:
        CSV formatted string.
    """
    import csv
    import io

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def _add_format_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=["table", "json", "csv"],
        default="table",
        help="Output format (default: table)",
    )


def _add_framework_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--framework",
        metavar="ID",
        help="Framework id (default: assessment.default_framework from config)",
    )


def _add_inventory_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--inventory",
        metavar="PATH",
        help="Inventory JSON file (a list of objects or {\"objects\": [...]})",
    )


def _add_tier_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tier",
        type=int,
        metavar="N",
        help="Only score safeguards applicable at tier N or below",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for PostureIQ CLI."""
    parser = argparse.ArgumentParser(
        prog="postureiq",
        description="Security posture maturity engine",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"postureiq {__version__}",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.postureiq/config.yaml)",
    )

    parser.add_argument(
        "--state",
        metavar="PATH",
        help=f"Override assessment state file (default: <data_dir>/{STATE_FILENAME})",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    # frameworks command
    frameworks_parser = subparsers.add_parser(
        "frameworks",
        help="List available frameworks",
        description="List built-in and configured framework catalogs.",
    )
    _add_format_argument(frameworks_parser)
    frameworks_parser.set_defaults(func=cmd_frameworks)

    # statuses command
    statuses_parser = subparsers.add_parser(
        "statuses",
        help="List status vocabularies and maturity levels",
        description="Show the policy and implementation statuses with their values.",
    )
    _add_format_argument(statuses_parser)
    statuses_parser.set_defaults(func=cmd_statuses)

    # map command
    map_parser = subparsers.add_parser(
        "map",
        help="Map inventory objects to control groups",
        description="Show which inventory objects map to each control group.",
    )
    _add_framework_argument(map_parser)
    map_parser.add_argument(
        "--inventory",
        metavar="PATH",
        required=True,
        help="Inventory JSON file",
    )
    _add_format_argument(map_parser)
    map_parser.set_defaults(func=cmd_map)

    # assess command
    assess_parser = subparsers.add_parser(
        "assess",
        help="Assess a framework",
        description="Compute group and framework maturity from assessments, "
                    "inventory and overrides.",
    )
    _add_framework_argument(assess_parser)
    _add_inventory_argument(assess_parser)
    _add_tier_argument(assess_parser)
    _add_format_argument(assess_parser)
    assess_parser.add_argument(
        "--save-snapshot",
        action="store_true",
        help="Record the framework scores as a compliance snapshot",
    )
    assess_parser.set_defaults(func=cmd_assess)

    # gaps command
    gaps_parser = subparsers.add_parser(
        "gaps",
        help="Show gap analysis",
        description="Display control groups below target maturity and weak safeguards.",
    )
    _add_framework_argument(gaps_parser)
    _add_inventory_argument(gaps_parser)
    _add_tier_argument(gaps_parser)
    gaps_parser.add_argument(
        "--target",
        type=int,
        default=3,
        choices=range(MIN_MATURITY + 1, MAX_MATURITY + 1),
        metavar="LEVEL",
        help="Target maturity level (default: 3)",
    )
    gaps_parser.add_argument(
        "--priority",
        choices=["critical", "high", "medium", "low"],
        help="Filter by priority level",
    )
    _add_format_argument(gaps_parser)
    gaps_parser.set_defaults(func=cmd_gaps)

    # set-safeguard command
    set_parser = subparsers.add_parser(
        "set-safeguard",
        help="Record a safeguard assessment",
        description="Set the policy and implementation status of a safeguard.",
    )
    set_parser.add_argument("safeguard_id", metavar="SAFEGUARD", help="Safeguard id")
    _add_framework_argument(set_parser)
    set_parser.add_argument(
        "--policy",
        choices=POLICY_STATUSES.ids(),
        help="Policy status",
    )
    set_parser.add_argument(
        "--implementation",
        choices=IMPLEMENTATION_STATUSES.ids(),
        help="Implementation status",
    )
    set_parser.add_argument("--note", default="", help="Free-text note")
    set_parser.add_argument(
        "--clear",
        action="store_true",
        help="Remove the safeguard's assessment instead",
    )
    set_parser.set_defaults(func=cmd_set_safeguard)

    # override command
    override_parser = subparsers.add_parser(
        "override",
        help="Set a manual maturity override",
        description="Pin a control group to a maturity level.",
    )
    override_parser.add_argument("group_id", metavar="GROUP", help="Control group id")
    override_parser.add_argument(
        "level",
        type=int,
        choices=range(MIN_MATURITY, MAX_MATURITY + 1),
        metavar="LEVEL",
        help="Maturity level (0-5)",
    )
    _add_framework_argument(override_parser)
    override_parser.add_argument("--note", default="", help="Justification")
    override_parser.set_defaults(func=cmd_override)

    # clear-override command
    clear_parser = subparsers.add_parser(
        "clear-override",
        help="Remove a manual maturity override",
    )
    clear_parser.add_argument("group_id", metavar="GROUP", help="Control group id")
    _add_framework_argument(clear_parser)
    clear_parser.set_defaults(func=cmd_clear_override)

    # export command
    export_parser = subparsers.add_parser(
        "export",
        help="Export an assessment as JSON",
        description="Write the assessment reporting payload to a JSON file.",
    )
    _add_framework_argument(export_parser)
    _add_inventory_argument(export_parser)
    _add_tier_argument(export_parser)
    export_parser.add_argument(
        "--output",
        metavar="DIR",
        help="Output directory (default: reporting.output_dir from config)",
    )
    export_parser.add_argument(
        "--include-gaps",
        action="store_true",
        help="Include gap analysis in the export",
    )
    export_parser.add_argument(
        "--compress",
        action="store_true",
        help="Gzip compress the output file",
    )
    export_parser.set_defaults(func=cmd_export)

    return parser


def setup_logging(verbose: int, quiet: bool) -> None:
    """Configure logging based on verbosity level."""
    if quiet:
        level = logging.WARNING
    elif verbose == 0:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# =============================================================================
# Shared helpers
# =============================================================================


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = Path(args.config) if args.config else None
    return load_config(config_path)


def _state_path(args: argparse.Namespace, settings: Settings) -> Path:
    if getattr(args, "state", None):
        return Path(args.state)
    return Path(settings.data_dir) / STATE_FILENAME


def _resolve_framework(
    args: argparse.Namespace, settings: Settings
) -> tuple[FrameworkCatalog, Crosswalk]:
    """Look up the requested (or default) framework. Raises CatalogError."""
    registry = FrameworkRegistry.from_paths(settings.frameworks.catalog_paths)
    framework_id = getattr(args, "framework", None) or settings.assessment.default_framework
    return registry.get(framework_id)


def _read_inventory(path: str | None) -> list[InventoryObject]:
    """Read an inventory file; no path means no objects."""
    if not path:
        return []
    with open(path) as f:
        data = json.load(f)
    objects = load_inventory(data)
    output_verbose(f"Loaded {len(objects)} inventory objects from {path}")
    return objects


def _tier(args: argparse.Namespace, settings: Settings) -> int | None:
    tier = getattr(args, "tier", None)
    return tier if tier is not None else settings.assessment.tier_filter


def _run_assessment(args: argparse.Namespace, settings: Settings) -> tuple[Any, ...]:
    """Load everything an assessment needs and run it."""
    from postureiq.assessment.engine import PostureEngine

    catalog, crosswalk = _resolve_framework(args, settings)
    objects = _read_inventory(getattr(args, "inventory", None))
    store = AssessmentStore.load(_state_path(args, settings))
    snapshot = store.snapshot(catalog.id)

    engine = PostureEngine(
        catalog,
        crosswalk,
        count_zero_compliance=settings.assessment.count_zero_compliance,
    )
    assessment = engine.assess(
        objects,
        assessments=snapshot.assessments,
        overrides=snapshot.overrides,
        tier_filter=_tier(args, settings),
    )
    return catalog, store, snapshot, assessment


# =============================================================================
# Commands
# =============================================================================


def cmd_frameworks(args: argparse.Namespace) -> int:
    """List available frameworks."""
    settings = _load_settings(args)
    registry = FrameworkRegistry.from_paths(settings.frameworks.catalog_paths)

    rows = []
    for catalog in registry.catalogs():
        stats = catalog.get_statistics()
        rows.append([
            catalog.id,
            catalog.name,
            stats["sections"],
            stats["groups"],
            stats["safeguards"],
        ])

    if args.format == "json":
        data = [
            {
                "id": row[0],
                "name": row[1],
                "sections": row[2],
                "groups": row[3],
                "safeguards": row[4],
                "default": row[0] == settings.assessment.default_framework,
            }
            for row in rows
        ]
        output(json.dumps(data, indent=2), force=True)
    elif args.format == "csv":
        headers = ["ID", "Name", "Sections", "Groups", "Safeguards"]
        output(format_as_csv(headers, rows), force=True)
    else:
        output()
        output(f"{'ID':<16} {'Name':<28} {'Sections':>8} {'Groups':>7} {'Safeguards':>11}")
        output("-" * 74)
        for row in rows:
            marker = " *" if row[0] == settings.assessment.default_framework else ""
            output(f"{row[0]:<16} {row[1]:<28} {row[2]:>8} {row[3]:>7} {row[4]:>11}{marker}")
        output()
        output("* default framework")

    return 0


def cmd_statuses(args: argparse.Namespace) -> int:
    """List status vocabularies and maturity levels."""
    vocabularies = [("policy", POLICY_STATUSES), ("implementation", IMPLEMENTATION_STATUSES)]

    if args.format == "json":
        data = {
            axis: vocabulary.to_list() for axis, vocabulary in vocabularies
        }
        data["maturity_levels"] = {str(k): v for k, v in MATURITY_LEVELS.items()}
        output(json.dumps(data, indent=2), force=True)
    elif args.format == "csv":
        headers = ["Axis", "ID", "Label", "Value"]
        rows = [
            [axis, s.id, s.label, "" if s.value is None else s.value]
            for axis, vocabulary in vocabularies
            for s in vocabulary
        ]
        output(format_as_csv(headers, rows), force=True)
    else:
        for axis, vocabulary in vocabularies:
            output()
            output(f"{axis.capitalize()} statuses:")
            output("-" * 60)
            for s in vocabulary:
                value = "N/A" if s.value is None else f"{s.value:.2f}"
                output(f"  {s.id:<22} {value:>6}  {s.label}")
        output()
        output("Maturity levels:")
        output("-" * 60)
        for level, label in MATURITY_LEVELS.items():
            output(f"  {level}  {label}")

    return 0


def cmd_map(args: argparse.Namespace) -> int:
    """Map inventory objects to control groups."""
    from postureiq.frameworks.mapping_engine import InventoryMapper

    settings = _load_settings(args)
    catalog, crosswalk = _resolve_framework(args, settings)

    try:
        objects = _read_inventory(args.inventory)
    except (OSError, json.JSONDecodeError) as e:
        output_error(f"Cannot read inventory: {e}")
        return 1

    mapper = InventoryMapper(catalog, crosswalk)
    mapping = mapper.build_mapping(objects)
    unmapped = mapper.get_unmapped_objects(objects)

    if args.format == "json":
        data = {
            "framework": catalog.id,
            "groups": {
                group_id: [obj.id for obj in mapped]
                for group_id, mapped in mapping.items()
            },
            "unmapped": [obj.id for obj in unmapped],
        }
        output(json.dumps(data, indent=2), force=True)
    elif args.format == "csv":
        headers = ["Group ID", "Group Name", "Object Count", "Object IDs"]
        rows = []
        for group in catalog.groups:
            mapped = mapping[group.id]
            rows.append([group.id, group.name, len(mapped), ";".join(o.id for o in mapped)])
        output(format_as_csv(headers, rows), force=True)
    else:
        output()
        output(f"{catalog.name} Inventory Mapping")
        output("=" * 70)
        for group in catalog.groups:
            mapped = mapping[group.id]
            names = ", ".join(o.name or o.id for o in mapped[:3])
            if len(mapped) > 3:
                names += f", +{len(mapped) - 3} more"
            output(f"{group.id:<8} {group.name[:36]:<36} {len(mapped):>4}  {names}")
        output()
        blind = sum(1 for mapped in mapping.values() if not mapped)
        output(f"Objects: {len(objects)}  Unmapped: {len(unmapped)}  Blind spots: {blind}")

    return 0


def cmd_assess(args: argparse.Namespace) -> int:
    """Assess a framework and display maturity."""
    settings = _load_settings(args)
    try:
        catalog, store, _, assessment = _run_assessment(args, settings)
    except (OSError, json.JSONDecodeError) as e:
        output_error(f"Cannot read inventory: {e}")
        return 1

    if args.save_snapshot:
        store.save_compliance_snapshot({catalog.id: assessment.effective_score})
        store.save(_state_path(args, settings))
        output_verbose("Compliance snapshot saved.")

    if args.format == "json":
        output(json.dumps(assessment.to_dict(), indent=2), force=True)
    elif args.format == "csv":
        headers = [
            "Group ID", "Group Name", "Section", "Effective Level", "Source",
            "Auto Level", "Safeguard Score", "Assessed", "Applicable", "Objects",
        ]
        rows = []
        for group in assessment.groups:
            rows.append([
                group.group_id,
                group.name,
                group.section_id or "",
                group.effective_maturity,
                group.source.value,
                group.auto_maturity,
                f"{group.result.score:.3f}",
                group.result.assessed_count,
                group.result.total_applicable,
                len(group.mapped_objects),
            ])
        output(format_as_csv(headers, rows), force=True)
    else:
        overall = assessment.result.overall
        output()
        output(f"{assessment.framework_name} Maturity Assessment")
        output("=" * 72)
        output()
        output(
            f"Effective Maturity: {assessment.effective_score:.1f}/5 "
            f"(Level {assessment.effective_level}, {MATURITY_LEVELS[assessment.effective_level]})"
        )
        output(
            f"Safeguard Score: {overall.score:.2f} "
            f"(Level {overall.maturity}, {score_band(overall.score if overall.assessed_count else None)})"
        )
        output(f"Safeguards assessed: {overall.assessed_count}/{overall.total_safeguards}")
        if assessment.tier_filter is not None:
            output(f"Tier filter: {assessment.tier_filter}")
        output()

        if assessment.sections:
            output("By Section:")
            output("-" * 72)
            for section in assessment.sections:
                output(f"  {section.section_id:<6} {section.name:<30} {section.score:>5.1f}")
            output()

        output(f"{'Group':<8} {'Name':<34} {'Level':>5}  {'Source':<10} {'Assessed':>9}")
        output("-" * 72)
        for group in assessment.groups:
            assessed = f"{group.result.assessed_count}/{group.result.total_applicable}"
            output(
                f"{group.group_id:<8} {group.name[:34]:<34} {group.effective_maturity:>5}  "
                f"{group.source.value:<10} {assessed:>9}"
            )
        output()
        stats = assessment.statistics
        output(
            f"Blind spots: {stats['blind_spots']}  "
            f"Overrides: {stats['groups_by_source']['override']}  "
            f"Unmapped objects: {stats['unmapped_objects']}"
        )

    return 0


def cmd_gaps(args: argparse.Namespace) -> int:
    """Show gap analysis."""
    from postureiq.analysis import GapAnalyzer, Priority

    settings = _load_settings(args)
    try:
        catalog, _, snapshot, assessment = _run_assessment(args, settings)
    except (OSError, json.JSONDecodeError) as e:
        output_error(f"Cannot read inventory: {e}")
        return 1

    analyzer = GapAnalyzer(target_maturity=args.target)
    gap_analysis = analyzer.analyze(assessment, catalog, snapshot.assessments)

    gaps_to_show = gap_analysis.all_gaps
    if args.priority:
        priority_filter = Priority(args.priority)
        gaps_to_show = [g for g in gaps_to_show if g.priority == priority_filter]

    if args.format == "json":
        output(json.dumps(gap_analysis.to_dict(), indent=2), force=True)
    elif args.format == "csv":
        headers = [
            "Group ID", "Group Name", "Priority", "Current Level",
            "Target Level", "Gap Type", "Source", "Weak Safeguards",
        ]
        rows = []
        for gap in gaps_to_show:
            rows.append([
                gap.group_id,
                gap.group_name,
                gap.priority.value,
                gap.current_maturity,
                gap.target_maturity,
                gap.gap_type.value,
                gap.source.value,
                ";".join(w.safeguard_id for w in gap.weak_safeguards),
            ])
        output(format_as_csv(headers, rows), force=True)
    else:
        output()
        output(f"{assessment.framework_name} Gap Analysis (target level {args.target})")
        output("=" * 70)
        output()
        output(f"Total groups: {gap_analysis.total_groups}")
        output(
            f"Groups with gaps: {gap_analysis.groups_with_gaps} "
            f"({gap_analysis.gap_percentage:.1f}%)"
        )
        output()

        output("By Priority:")
        for priority, count in gap_analysis.gaps_by_priority.items():
            output(f"  {priority.capitalize()}: {count}")
        output()

        if gaps_to_show:
            output("Gaps:")
            output("-" * 70)
            for gap in gaps_to_show[:20]:
                output(f"\n{gap.group_id}: {gap.group_name}")
                output(f"  Priority: {gap.priority.value.upper()}")
                output(f"  Current Level: {gap.current_maturity} (Target: {gap.target_maturity})")
                output(f"  Type: {gap.gap_type.value}")
                output(f"  Recommendation: {gap.recommendation}")

            if len(gaps_to_show) > 20:
                output(f"\n... and {len(gaps_to_show) - 20} more gaps")
        else:
            output("No gaps found matching filters.")

        if gap_analysis.weak_safeguards:
            output()
            output("Weak Safeguards:")
            output("-" * 70)
            for weak in gap_analysis.weak_safeguards[:10]:
                output(f"  {weak.safeguard_id}: {weak.name} ({weak.score:.2f})")

    return 0


def cmd_set_safeguard(args: argparse.Namespace) -> int:
    """Record or clear a safeguard assessment."""
    settings = _load_settings(args)
    catalog, _ = _resolve_framework(args, settings)

    safeguard = catalog.get_safeguard(args.safeguard_id)
    if safeguard is None:
        output_error(f"Unknown safeguard for {catalog.id}: {args.safeguard_id}")
        return 1

    state_path = _state_path(args, settings)
    store = AssessmentStore.load(state_path)

    if args.clear:
        if store.clear_safeguard(catalog.id, safeguard.id):
            output(f"Cleared assessment for {safeguard.id}.")
        else:
            output(f"No assessment recorded for {safeguard.id}.")
        store.save(state_path)
        return 0

    if not args.policy and not args.implementation:
        output_error("Specify --policy and/or --implementation (or --clear).")
        return 1

    store.set_safeguard(
        catalog.id,
        safeguard.id,
        policy=args.policy,
        implementation=args.implementation,
        note=args.note,
    )
    store.save(state_path)

    score = compute_safeguard_score(args.policy, args.implementation)
    shown = "N/A" if score is None else f"{score:.2f}"
    output(f"{safeguard.id} ({safeguard.name}): score {shown} [{score_band(score)}]")
    return 0


def cmd_override(args: argparse.Namespace) -> int:
    """Set a manual maturity override."""
    settings = _load_settings(args)
    catalog, _ = _resolve_framework(args, settings)

    group = catalog.get_group(args.group_id)
    if group is None:
        output_error(f"Unknown control group for {catalog.id}: {args.group_id}")
        return 1

    state_path = _state_path(args, settings)
    store = AssessmentStore.load(state_path)
    store.set_override(catalog.id, group.id, args.level, note=args.note)
    store.save(state_path)

    output(f"{group.id} ({group.name}) pinned to Level {args.level} ({MATURITY_LEVELS[args.level]}).")
    return 0


def cmd_clear_override(args: argparse.Namespace) -> int:
    """Remove a manual maturity override."""
    settings = _load_settings(args)
    catalog, _ = _resolve_framework(args, settings)

    state_path = _state_path(args, settings)
    store = AssessmentStore.load(state_path)
    if not store.clear_override(catalog.id, args.group_id):
        output(f"No override set for {args.group_id}.")
        return 0

    store.save(state_path)
    output(f"Override cleared for {args.group_id}.")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Export an assessment as JSON."""
    from postureiq.analysis import GapAnalyzer
    from postureiq.reports import JsonExporter

    settings = _load_settings(args)
    try:
        catalog, _, snapshot, assessment = _run_assessment(args, settings)
    except (OSError, json.JSONDecodeError) as e:
        output_error(f"Cannot read inventory: {e}")
        return 1

    gaps = None
    if args.include_gaps:
        gaps = GapAnalyzer().analyze(assessment, catalog, snapshot.assessments)

    exporter = JsonExporter(
        version=__version__,
        organization=settings.reporting.organization or None,
    )
    output_dir = Path(args.output) if args.output else Path(settings.reporting.output_dir)
    result = exporter.export(assessment, output_dir, gaps=gaps, compress=args.compress)

    if not result.success:
        output_error(f"Export failed: {result.error}")
        return 1

    output(f"Exported {result.record_count} records to {result.path} ({result.size_bytes} bytes)")
    return 0


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for PostureIQ CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Set up logging and output mode
    setup_logging(args.verbose, args.quiet)
    set_output_mode(args.quiet, args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        output("\nOperation cancelled.")
        sys.exit(130)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        sys.exit(2)
    except CatalogError as e:
        output_error(f"Catalog error: {e}")
        sys.exit(2)
    except StoreError as e:
        output_error(f"State error: {e}")
        sys.exit(2)
    except Exception as e:
        if args.verbose > 0:
            raise
        output_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

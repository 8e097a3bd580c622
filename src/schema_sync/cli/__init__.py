"""CLI module for comparing MySQL schema snapshots.

Provides commands for diffing two schema snapshots into a validated
migration and for checking snapshots structurally.

Usage:
    schema-sync diff desired.json current.json
    schema-sync diff desired.json current.json --output migration.sql
    schema-sync diff desired.json current.json --json --no-renames
    schema-sync diff desired.json current.json --apply-renames
    schema-sync check desired.json current.json

Commands:
    diff   - Compare SOURCE (desired) against TARGET (current) and print the migration
    check  - Validate snapshot files and show their size

Exit codes:
    0  success
    1  migration blocked by validation errors, or invalid snapshot (check)
    2  unreadable input or configuration
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from schema_sync.config.loader import load_config
from schema_sync.config.models import SyncConfig
from schema_sync.errors import SchemaValidationError
from schema_sync.pipeline import ComparisonResult, compare
from schema_sync.schema.comparator import get_schema_stats
from schema_sync.schema.snapshot import load_schema
from schema_sync.schema.validator import Severity

console = Console()

EXIT_OK = 0
EXIT_BLOCKED = 1
EXIT_INPUT_ERROR = 2

_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "dim",
}


def _setup_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_cli_config(args: argparse.Namespace) -> SyncConfig | None:
    config_path = Path(args.config) if args.config else None
    try:
        return load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Config error: {e}[/red]")
        return None


# ============================================================================
# diff output
# ============================================================================


def _print_change_table(result: ComparisonResult) -> None:
    diff = result.diff
    columns_added = sum(len(t.added_columns) for t in diff.modified_tables)
    columns_removed = sum(len(t.removed_columns) for t in diff.modified_tables)
    columns_modified = sum(len(t.modified_columns) for t in diff.modified_tables)

    change_table = Table(title="Schema Differences", show_header=True, header_style="bold")
    change_table.add_column("", style="dim")
    change_table.add_column("Added", justify="right", style="green")
    change_table.add_column("Removed", justify="right", style="red")
    change_table.add_column("Modified", justify="right", style="yellow")

    def cell(count: int) -> str:
        return str(count) if count > 0 else "-"

    change_table.add_row(
        "Tables",
        cell(len(diff.added_tables)),
        cell(len(diff.removed_tables)),
        cell(len(diff.modified_tables)),
    )
    change_table.add_row(
        "Columns", cell(columns_added), cell(columns_removed), cell(columns_modified)
    )
    change_table.add_row(
        "Indexes", cell(len(diff.added_indexes)), cell(len(diff.removed_indexes)), "-"
    )
    change_table.add_row(
        "Constraints",
        cell(len(diff.added_constraints)),
        cell(len(diff.removed_constraints)),
        "-",
    )
    console.print(change_table)


def _print_validation(result: ComparisonResult) -> None:
    validation = result.validation
    if validation.is_valid and not validation.warnings:
        console.print("[bold green]v[/bold green] No validation issues found")
        return

    for error in validation.errors:
        console.print(f"[bold red]ERROR[/bold red] {error.message}", highlight=False)
        if error.details:
            console.print(f"      [dim]{error.details}[/dim]", highlight=False)

    for severity, warnings in validation.warnings_by_severity().items():
        style = _SEVERITY_STYLES[severity]
        for warning in warnings:
            console.print(
                f"[{style}]{severity.value:<8}[/{style}] {warning.message}", highlight=False
            )
            if warning.suggestion:
                console.print(f"         [dim]{warning.suggestion}[/dim]", highlight=False)

    console.print(f"[bold]{validation.summary()}[/bold]")


def _write_sql(path: Path, statements: list[str]) -> None:
    path.write_text("".join(f"{sql};\n" for sql in statements))


# ============================================================================
# Commands
# ============================================================================


def cmd_diff(args: argparse.Namespace) -> int:
    """Compare two snapshots and print the validated migration.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 when the migration is valid, 1 when blocked, 2 on input errors.
    """
    config = _load_cli_config(args)
    if config is None:
        return EXIT_INPUT_ERROR
    _setup_logging(config.logging.level)

    try:
        source = load_schema(args.source)
        target = load_schema(args.target)
        result = compare(
            source,
            target,
            detect_renames=config.compare.detect_renames and not args.no_renames,
            apply_renames=config.compare.apply_renames or args.apply_renames,
        )
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return EXIT_INPUT_ERROR
    except SchemaValidationError as e:
        console.print(f"[red]Invalid schema: {e}[/red]", highlight=False)
        return EXIT_INPUT_ERROR

    if args.output and not result.blocked:
        _write_sql(Path(args.output), result.sql_statements())

    if args.json or config.output.format == "json":
        # Plain output so the JSON stays machine-readable
        console.out(json.dumps(result.to_dict(), indent=2), highlight=False)
        return EXIT_BLOCKED if result.blocked else EXIT_OK

    console.print(
        f"Comparing [bold cyan]{result.target_name}[/bold cyan] (current) -> "
        f"[bold]{result.source_name}[/bold] (desired)"
    )

    if result.diff.is_empty:
        console.print()
        console.print("[bold green]v[/bold green] Schemas are identical - nothing to do")
        return EXIT_OK

    console.print()
    _print_change_table(result)

    if result.renames:
        console.print()
        if result.renames_applied:
            console.print("[bold]Renames applied:[/bold]")
        else:
            console.print("[bold]Suggested renames:[/bold]")
        for old_name, new_name in sorted(result.renames.items()):
            console.print(f"  {old_name} -> [cyan]{new_name}[/cyan]")
        if not result.renames_applied:
            console.print(
                "  [dim]Planned as drop and create; "
                "pass --apply-renames to rename in place[/dim]"
            )

    console.print()
    console.print("[bold]Validation:[/bold]")
    _print_validation(result)

    if result.blocked:
        console.print()
        console.print(
            f"[bold red]x[/bold red] Migration blocked by "
            f"{result.validation.error_count} error(s); no SQL generated"
        )
        return EXIT_BLOCKED

    console.print()
    console.print(result.plan.format_summary(), highlight=False)

    if config.output.show_sql and not args.no_sql:
        console.print()
        console.print("[bold]SQL:[/bold]")
        for sql in result.sql_statements():
            console.print(f"{sql};", markup=False, highlight=False, soft_wrap=True)

    if args.output:
        console.print()
        console.print(f"[dim]SQL written to {args.output}[/dim]")

    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    """Validate snapshot files and print their table/column/index counts.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 when every snapshot is valid, 1 if one is invalid, 2 if one is missing.
    """
    config = _load_cli_config(args)
    if config is None:
        return EXIT_INPUT_ERROR
    _setup_logging(config.logging.level)

    exit_code = EXIT_OK
    stats_table = Table(title="Snapshots", show_header=True, header_style="bold")
    stats_table.add_column("Schema", style="dim")
    stats_table.add_column("Tables", justify="right")
    stats_table.add_column("Columns", justify="right")
    stats_table.add_column("Indexes", justify="right")
    stats_table.add_column("Constraints", justify="right")

    for path in args.snapshots:
        try:
            schema = load_schema(path)
        except FileNotFoundError as e:
            console.print(f"[bold red]x[/bold red] {e}")
            exit_code = EXIT_INPUT_ERROR
            continue
        except SchemaValidationError as e:
            console.print(f"[bold red]x[/bold red] {path}: {e}", highlight=False)
            exit_code = max(exit_code, EXIT_BLOCKED)
            continue

        stats = get_schema_stats(schema)
        stats_table.add_row(
            f"{schema.name} ({path})",
            str(stats["tables"]),
            str(stats["columns"]),
            str(stats["indexes"]),
            str(stats["constraints"]),
        )

    if stats_table.row_count:
        console.print(stats_table)
    if exit_code == EXIT_OK:
        console.print("[bold green]v[/bold green] All snapshots are valid")
    return exit_code


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="schema-sync",
        description="Compare MySQL schema snapshots and generate validated migrations",
    )
    # Shared by every subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to schema-sync.toml (default: ./schema-sync.toml if present)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # diff command
    p_diff = subparsers.add_parser(
        "diff",
        help="Compare SOURCE (desired) against TARGET (current)",
        parents=[common],
    )
    p_diff.add_argument("source", help="JSON snapshot of the desired schema")
    p_diff.add_argument("target", help="JSON snapshot of the current schema")
    p_diff.add_argument(
        "--json",
        action="store_true",
        help="Print the full comparison as JSON",
    )
    p_diff.add_argument(
        "--no-renames",
        action="store_true",
        help="Do not suggest table renames",
    )
    p_diff.add_argument(
        "--apply-renames",
        action="store_true",
        help="Plan suggested renames as RENAME TABLE instead of drop/create",
    )
    p_diff.add_argument(
        "--no-sql",
        action="store_true",
        help="Do not print the SQL statements",
    )
    p_diff.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the SQL statements to this file",
    )
    p_diff.set_defaults(func=cmd_diff)

    # check command
    p_check = subparsers.add_parser(
        "check",
        help="Validate schema snapshot files",
        parents=[common],
    )
    p_check.add_argument("snapshots", nargs="+", help="JSON snapshot files")
    p_check.set_defaults(func=cmd_check)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

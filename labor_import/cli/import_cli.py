"""
Command-line interface for weekly labor imports.

Usage:
    python -m labor_import.cli.import_cli process --input <file.xlsx> --actor <id> [options]
    python -m labor_import.cli.import_cli undo --import-id <uuid> --actor <id>
    python -m labor_import.cli.import_cli history --project-id <uuid> [--limit N]
    python -m labor_import.cli.import_cli init-db
"""

import argparse
import json
import sys
from datetime import datetime

from labor_import.batch import ImportHistory, ImportUndoService, LaborImportPipeline, UndoRejected
from labor_import.core.config import load_settings
from labor_import.core.errors import LaborImportError
from labor_import.core.models import ImportResult, ImportStatus, ImportSubmission
from labor_import.observability.logger import get_logger
from labor_import.observability.metrics import start_metrics_server
from labor_import.utils.validation import (
    ValidationError,
    validate_actor,
    validate_limit,
    validate_uuid,
    validate_workbook_path,
)
from labor_import.warehouse import DatabaseConnectionPool, PostgresLaborStore, SchemaManager

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1


def format_timestamp(ts: datetime | None) -> str:
    """Format timestamp for display."""
    return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else "N/A"


def create_pool(args) -> DatabaseConnectionPool:
    """
    Open a connection pool from CLI flags, falling back to DB_* env vars.

    Args:
        args: Command-line arguments

    Returns:
        Opened DatabaseConnectionPool
    """
    pool = DatabaseConnectionPool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
    )
    pool.open()
    return pool


def print_result(file_name: str, result: ImportResult) -> None:
    print(f"\n{'=' * 60}")
    print(f"IMPORT {result.status.value.upper()}: {file_name}")
    print(f"{'=' * 60}")
    if result.error:
        print(f"  Error: {result.error}")
    if result.week_ending:
        print(f"  Week ending: {result.week_ending.isoformat()}")
    print(f"  Imported: {result.imported}")
    print(f"  Updated: {result.updated}")
    print(f"  Skipped: {result.skipped}")
    print(f"  Employees: {result.employee_count}")
    if result.new_employees_created:
        print(f"  New employees created: {result.new_employees_created}")
    if result.zero_rate_employees:
        print(f"  Rows without a pay rate: {result.zero_rate_employees}")
    if result.import_id:
        print(f"  Import ID: {result.import_id}")

    if result.errors:
        print(f"\n  {'Row':<6} {'Code':<22} Message")
        print(f"  {'-' * 56}")
        for error in result.errors:
            print(f"  {error.row:<6} {error.code:<22} {error.message}")
        if result.additional_errors:
            print(f"  ... and {result.additional_errors} more")
    print(f"{'=' * 60}\n")


def process_command(args) -> int:
    """
    Import one or more labor workbooks.

    Args:
        args: Command-line arguments

    Returns:
        Exit code: 0 when every file ended success or partial
    """
    try:
        actor = validate_actor(args.actor)
        project_id = validate_uuid(args.project_id, "project-id") if args.project_id else None
        paths = [validate_workbook_path(path) for path in args.input]
        settings = load_settings(args.config)
    except (ValidationError, FileNotFoundError, ValueError) as e:
        print(f"\nError: {e}")
        return EXIT_FAILED

    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    submissions = [
        ImportSubmission(
            file_name=path.name,
            content=path.read_bytes(),
            project_id=project_id,
            imported_by=actor,
            force=args.force,
        )
        for path in paths
    ]

    pool = create_pool(args)
    try:
        pipeline = LaborImportPipeline(PostgresLaborStore(pool), settings)
        logger.info(f"Processing {len(submissions)} file(s)")
        results = pipeline.run_many(submissions, max_workers=args.workers)
    finally:
        pool.close()

    if args.json:
        payload = {s.file_name: r.to_payload() for s, r in zip(submissions, results)}
        print(json.dumps(payload, indent=2, default=str))
    else:
        for submission, result in zip(submissions, results):
            print_result(submission.file_name, result)

    landed = all(r.status in (ImportStatus.SUCCESS, ImportStatus.PARTIAL) for r in results)
    return EXIT_OK if landed else EXIT_FAILED


def undo_command(args) -> int:
    """
    Undo a successful or partial import.

    Args:
        args: Command-line arguments
    """
    try:
        import_id = validate_uuid(args.import_id, "import-id")
        actor = validate_actor(args.actor)
        settings = load_settings()
    except (ValidationError, FileNotFoundError, ValueError) as e:
        print(f"\nError: {e}")
        return EXIT_FAILED

    pool = create_pool(args)
    try:
        result = ImportUndoService(
            PostgresLaborStore(pool), settings.running_average_weeks
        ).undo(import_id, actor)
    except UndoRejected as e:
        print(f"\nError: {e}")
        return EXIT_FAILED
    except LaborImportError as e:
        logger.error(f"Error during undo: {e.message}", exc_info=True)
        print(f"\nError: {e.message}")
        return EXIT_FAILED
    finally:
        pool.close()

    if args.json:
        print(json.dumps(result.to_payload(), indent=2))
    else:
        print(f"\n{'=' * 60}")
        print(f"UNDO {'COMPLETE' if result.success else 'COMPLETED WITH ERRORS'}: {import_id}")
        print(f"{'=' * 60}")
        print(f"  Detail lines deleted: {result.detail_lines_deleted}")
        print(f"  Aggregates deleted: {result.aggregates_deleted}")
        print(f"  Placeholder workers deleted: {result.workers_deleted}")
        for error in result.errors:
            print(f"  Error: {error}")
        print(f"{'=' * 60}\n")

    return EXIT_OK if result.success else EXIT_FAILED


def history_command(args) -> int:
    """
    Show recent imports and labor data freshness for a project.

    Args:
        args: Command-line arguments
    """
    try:
        project_id = validate_uuid(args.project_id, "project-id")
        limit = validate_limit(args.limit)
    except ValidationError as e:
        print(f"\nError: {e}")
        return EXIT_FAILED

    pool = create_pool(args)
    try:
        history = ImportHistory(PostgresLaborStore(pool))
        batches = history.recent(project_id, limit)
        freshness = history.freshness(project_id)
    except LaborImportError as e:
        logger.error(f"Error reading import history: {e.message}", exc_info=True)
        print(f"\nError: {e.message}")
        return EXIT_FAILED
    finally:
        pool.close()

    print(f"\n{'=' * 100}")
    print(f"IMPORT HISTORY - Project: {project_id}")
    print(f"{'=' * 100}\n")
    age = f" ({freshness.age_days} days old)" if freshness.age_days is not None else ""
    print(f"Labor data: {freshness.status}{age}\n")

    if not batches:
        print("No imports found for this project.\n")
        return EXIT_OK

    print(f"{'Imported':<20} {'Status':<9} {'Week':<11} {'Ins':>5} {'Upd':>5} {'Skip':>5} {'Err':>5}  File")
    print(f"{'-' * 100}")
    for batch in batches:
        week = batch.week_ending.isoformat() if batch.week_ending else "-"
        print(
            f"{format_timestamp(batch.imported_at):<20} {batch.status.value:<9} {week:<11} "
            f"{batch.imported:>5} {batch.updated:>5} {batch.skipped:>5} {batch.errored:>5}  "
            f"{batch.file_name}"
        )
    print(f"\n{'=' * 100}\n")
    return EXIT_OK


def init_db_command(args) -> int:
    """Create the warehouse tables if they do not exist."""
    pool = create_pool(args)
    try:
        manager = SchemaManager(pool)
        manager.create_schema()
        print(f"Schema ready: {', '.join(manager.list_tables())}")
    finally:
        pool.close()
    return EXIT_OK


def add_db_arguments(parser: argparse.ArgumentParser) -> None:
    """Database connection flags; unset flags fall back to DB_* env vars."""
    parser.add_argument("--db-host", default=None, help="Database host (default: $DB_HOST or localhost)")
    parser.add_argument("--db-port", type=int, default=None, help="Database port (default: $DB_PORT or 5432)")
    parser.add_argument("--db-name", default=None, help="Database name (default: $DB_NAME or labor_costs)")
    parser.add_argument("--db-user", default=None, help="Database user (default: $DB_USER or labor_import)")
    parser.add_argument("--db-password", default=None, help="Database password (default: $DB_PASSWORD)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Weekly labor cost import",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import a week, matching the project by the job number in the file
  python -m labor_import.cli.import_cli process --input data/week3.xlsx --actor jdoe

  # Import into an explicitly selected project, re-importing an identical file
  python -m labor_import.cli.import_cli process --input data/week3.xlsx --actor jdoe \\
      --project-id 6f1c2a7e-8a55-4f7c-9c1e-5b0f5b8f2d11 --force

  # Import several weeks concurrently and print JSON results
  python -m labor_import.cli.import_cli process --input wk1.xlsx --input wk2.xlsx \\
      --actor jdoe --json

  # Undo an import
  python -m labor_import.cli.import_cli undo --import-id <uuid> --actor jdoe
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Process command
    process_parser = subparsers.add_parser("process", help="Import labor workbooks")
    process_parser.add_argument(
        "--input",
        required=True,
        action="append",
        help="Path to an .xlsx workbook (repeat for several files)"
    )
    process_parser.add_argument("--actor", required=True, help="Who is importing the file(s)")
    process_parser.add_argument(
        "--project-id",
        default=None,
        help="Project UUID (default: match by the job number in the file)"
    )
    process_parser.add_argument(
        "--config",
        default=None,
        help="Path to import settings YAML (default: config/labor_import.yaml)"
    )
    process_parser.add_argument(
        "--force",
        action="store_true",
        help="Re-import a file even if it was already imported"
    )
    process_parser.add_argument(
        "--workers",
        type=int,
        default=4,
        help="Files processed concurrently (default: 4)"
    )
    process_parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port while running"
    )
    process_parser.add_argument("--json", action="store_true", help="Print JSON result payloads")
    add_db_arguments(process_parser)

    # Undo command
    undo_parser = subparsers.add_parser("undo", help="Undo a successful or partial import")
    undo_parser.add_argument("--import-id", required=True, help="Import UUID")
    undo_parser.add_argument("--actor", required=True, help="Who is undoing the import")
    undo_parser.add_argument("--json", action="store_true", help="Print JSON result payload")
    add_db_arguments(undo_parser)

    # History command
    history_parser = subparsers.add_parser("history", help="Show recent imports for a project")
    history_parser.add_argument("--project-id", required=True, help="Project UUID")
    history_parser.add_argument("--limit", type=int, default=10, help="Imports to show (default: 10)")
    add_db_arguments(history_parser)

    # Init-db command
    init_parser = subparsers.add_parser("init-db", help="Create the warehouse schema")
    add_db_arguments(init_parser)

    return parser


COMMANDS = {
    "process": process_command,
    "undo": undo_command,
    "history": history_command,
    "init-db": init_db_command,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILED

    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())

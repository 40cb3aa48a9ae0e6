#!/usr/bin/env python3
"""
Process one ERO enrollment submission: parse, gate, validate, reconcile.

Loads configuration (get_active_config), initializes the database engine,
creates the enrollment tables if needed, processes the file and prints one
summary line per record.

Exit codes:
    0  every record committed or quarantined
    1  submission rejected (parse or structural error), or setup failure
    2  one or more records failed to persist

Usage:
    python3 scripts/run_enrollment.py --file <path> --format {flat,xml} [options]

Examples:
    # Flat file with the default config (config/config.yaml)
    python3 scripts/run_enrollment.py --file enrollments.txt --format flat

    # XML against a local SQLite database, full report as JSON
    python3 scripts/run_enrollment.py --file enrollments.xml --format xml \\
        --db-url sqlite:///enrollment.db --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from uuid import UUID

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_RECORD_FAILED = 2


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ingest an ERO enrollment submission.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--file",
        required=True,
        type=Path,
        help="Path to the submission file.",
    )
    parser.add_argument(
        "--format",
        required=True,
        choices=["flat", "xml"],
        help="Declared submission format (never auto-detected).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: config/config.yaml).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Override processing.max_workers.",
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Override database.url.",
    )
    parser.add_argument(
        "--actor-id",
        default=None,
        help="Actor UUID recorded on every written row (default: system actor).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full processing report as JSON instead of summary lines.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    source_path = args.file.resolve()
    if not source_path.is_file():
        print(f"ERROR: File not found: {source_path}", file=sys.stderr)
        return EXIT_REJECTED

    try:
        actor_id = UUID(args.actor_id) if args.actor_id else None
    except ValueError:
        print(f"ERROR: --actor-id is not a UUID: {args.actor_id}", file=sys.stderr)
        return EXIT_REJECTED

    # Lazy imports so we fail fast on args first
    from enrollment_config import get_active_config
    from enrollment_ingestion.services import SubmissionService
    from enrollment_kernel.db.engine import (
        create_tables,
        get_session_factory,
        init_engine_from_url,
    )
    from enrollment_kernel.domain.clock import SystemClock
    from enrollment_kernel.exceptions import (
        ConfigurationError,
        ParseError,
        StructuralError,
    )
    from enrollment_kernel.logging_config import configure_logging

    try:
        config = get_active_config(args.config)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return EXIT_REJECTED

    if args.workers is not None:
        if args.workers < 1:
            print("ERROR: --workers must be >= 1", file=sys.stderr)
            return EXIT_REJECTED
        config = replace(config, processing=replace(config.processing, max_workers=args.workers))
    if args.db_url:
        config = replace(config, database=replace(config.database, url=args.db_url))

    configure_logging(level=logging.DEBUG if (args.debug or config.debug) else logging.INFO)

    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_timeout=config.database.pool_timeout,
    )
    create_tables()

    service = SubmissionService(get_session_factory(), config=config, clock=SystemClock())

    try:
        report = service.process_file(source_path, args.format, actor_id=actor_id)
    except ParseError as e:
        print(f"REJECTED: {e.code}: {e}", file=sys.stderr)
        return EXIT_REJECTED
    except StructuralError as e:
        print(f"REJECTED: {e.code}: {e}", file=sys.stderr)
        for d in e.discrepancies:
            print(f"  {d.code}: {d.message}", file=sys.stderr)
        return EXIT_REJECTED

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(f"Submission {report.submission_id} ({report.source_format.value})")
        for outcome in report.outcomes:
            line = f"  record {outcome.index} efin={outcome.efin or '-'} {outcome.status.value}"
            if outcome.office_id:
                line += f" office={outcome.office_id}"
            for v in outcome.violations:
                line += f" [{v.section}.{v.field}:{v.rule}]"
            if outcome.ambiguities:
                line += f" ambiguous={len(outcome.ambiguities)}"
            if outcome.error:
                line += f" error={outcome.error}"
            print(line)
        print(
            f"Committed: {report.committed_count}, Quarantined: {report.quarantined_count}, "
            f"Failed: {report.failed_count}, Ambiguous: {report.ambiguous_count}"
        )

    return EXIT_RECORD_FAILED if report.failed_count else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

"""
Command line entry point: ``org-seed``.

Examples:
  # Defaults (100 companies x 5 branches x 8 departments x 100 employees) into PostgreSQL
  org-seed --create-schema

  # Graph mode into Neo4j
  org-seed --mode edge --companies 10

  # Dry run in memory with a config file
  org-seed --dry-run --config seed.yaml
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import psycopg2
from neo4j.exceptions import DriverError, Neo4jError

from .config import MODES, ConnectionSettings, GenerationConfig, load_config
from .errors import ConfigError, SeedError
from .factory import EntityFactory
from .generator import HierarchyGenerator
from .models import ProgressEvent, Summary
from .sinks import InMemorySink, Neo4jSink, PostgresSink, Sink

SINKS = ("memory", "postgres", "neo4j")

# Default store per relationship mode
DEFAULT_SINK = {"reference": "postgres", "edge": "neo4j"}

# Connection and setup failures reported as "Error: ..." with exit code 1
STORE_ERRORS = (psycopg2.Error, DriverError, Neo4jError)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="org-seed",
        description="Seed a synthetic Company/Branch/Department/Employee hierarchy.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )

    parser.add_argument("--config", type=Path, help="YAML file with generation settings")
    parser.add_argument("--mode", choices=MODES, help="Relationship encoding (default: reference)")
    parser.add_argument(
        "--sink",
        choices=SINKS,
        help="Target store (default: postgres for reference, neo4j for edge)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Same as --sink memory")

    parser.add_argument("--companies", type=int, dest="company_count", metavar="N")
    parser.add_argument("--branches", type=int, dest="branches_per_company", metavar="N",
                        help="Branches per company")
    parser.add_argument("--departments", type=int, dest="depts_per_branch", metavar="N",
                        help="Departments per branch")
    parser.add_argument("--employees", type=int, dest="employees_per_dept", metavar="N",
                        help="Employees per department")
    parser.add_argument("--chunk-size", type=int, metavar="N", help="Records per bulk insert")
    parser.add_argument("--seed", type=int, help="Random seed for reproducibility")

    parser.add_argument("--timeout", type=float, metavar="SEC",
                        help="Stop issuing inserts after SEC seconds")
    parser.add_argument("--unique-emails", action="store_true",
                        help="Check employee emails for uniqueness while generating")
    parser.add_argument("--create-schema", action="store_true",
                        help="Create PostgreSQL tables if missing")
    parser.add_argument("--clear", action="store_true",
                        help="Delete existing hierarchy data before seeding")
    parser.add_argument("--metrics-out", type=Path, help="Write the run summary as JSON")
    parser.add_argument("-q", "--quiet", action="store_true", help="No per-chunk progress")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> GenerationConfig:
    """Config file values, overridden by explicit flags."""
    config = load_config(args.config) if args.config else GenerationConfig()
    return config.with_overrides(
        company_count=args.company_count,
        branches_per_company=args.branches_per_company,
        depts_per_branch=args.depts_per_branch,
        employees_per_dept=args.employees_per_dept,
        chunk_size=args.chunk_size,
        mode=args.mode,
        seed=args.seed,
    )


def open_sink(name: str, settings: ConnectionSettings) -> Sink:
    """Create the named sink."""
    if name == "memory":
        return InMemorySink(keep_records=False)
    if name == "postgres":
        return PostgresSink.connect(settings.database_url)
    if name == "neo4j":
        return Neo4jSink.connect(
            settings.neo4j_uri, settings.neo4j_auth, database=settings.neo4j_database
        )
    raise ConfigError(f"Unknown sink: {name}")


def print_progress(event: ProgressEvent) -> None:
    label = "edges" if event.is_edge else "records"
    print(
        f"  {event.kind}: chunk {event.chunk_index + 1} "
        f"({event.chunk_rows:,} {label}, {event.written:,} total)"
    )


def print_report(summary: Summary, config: GenerationConfig) -> None:
    """Print the run report."""
    print("\n" + "=" * 60)
    print("Generation " + ("Complete" if summary.completed else "Stopped"))
    print("=" * 60)
    print(f"\nDuration: {summary.elapsed_ms / 1000:.1f} seconds")

    expected = config.expected_counts()
    print(f"\nEntities Created ({summary.total_entities:,} total):")
    for label, count in summary.as_dict()["stats"].items():
        status = "✓" if count == expected[label] else "✗"
        print(f"  {status} {label}: {count:,} (expected {expected[label]:,})")


def save_metrics(path: Path, summary: Summary, config: GenerationConfig) -> None:
    """Save the summary and config to a JSON file."""
    data = {
        **summary.as_dict(),
        "config": {
            "company_count": config.company_count,
            "branches_per_company": config.branches_per_company,
            "depts_per_branch": config.depts_per_branch,
            "employees_per_dept": config.employees_per_dept,
            "chunk_size": config.chunk_size,
            "mode": config.mode,
            "seed": config.seed,
        },
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    print(f"\nMetrics saved to {path}")


def main(argv: list[str] | None = None) -> int:
    """
    Run one seeding pass.

    Returns:
        0 on success, 1 on connection, setup or sink failure or cancellation,
        2 on invalid config
    """
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    sink_name = "memory" if args.dry_run else (args.sink or DEFAULT_SINK[config.mode])
    factory = EntityFactory(seed=config.seed, unique_emails=args.unique_emails)

    print(f"Seeding {sink_name} ({config.mode} mode)")
    try:
        sink = open_sink(sink_name, ConnectionSettings.from_env())
    except STORE_ERRORS as e:
        print(f"\nError: cannot connect to {sink_name}: {e}", file=sys.stderr)
        return 1

    with sink:
        try:
            if args.create_schema and isinstance(sink, PostgresSink):
                sink.ensure_schema()
            if args.clear and isinstance(sink, (PostgresSink, Neo4jSink)):
                sink.clear()
        except STORE_ERRORS as e:
            print(f"\nError: {e}", file=sys.stderr)
            return 1

        generator = HierarchyGenerator(
            sink,
            factory=factory,
            progress=None if args.quiet else print_progress,
        )
        try:
            summary = generator.generate_all(config, timeout=args.timeout)
        except ConfigError as e:
            print(f"Invalid configuration: {e}", file=sys.stderr)
            return 2
        except SeedError as e:
            print(f"\nError: {e}", file=sys.stderr)
            if e.summary is not None:
                print_report(e.summary, config)
                if args.metrics_out:
                    save_metrics(args.metrics_out, e.summary, config)
            return 1

    print_report(summary, config)
    if args.metrics_out:
        save_metrics(args.metrics_out, summary, config)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Command-line entry point for the MRF loader.

Usage:
    mrf-loader ingest data/in-network.json
    mrf-loader ingest data/drop-folder --batch-size 250 --metrics-file /var/lib/node_exporter/mrf.prom
    mrf-loader create-database
    mrf-loader check-connection
    mrf-loader init-schema
    mrf-loader stats
"""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from pydantic import ValidationError

from mrf_loader import __version__
from mrf_loader.catalog.database import (
    Database,
    DatabaseConnectionError,
    SchemaError,
    build_database_url,
    create_database,
)
from mrf_loader.catalog.statistics import ReportingError, StatisticsReporter
from mrf_loader.common.logging_config import clear_run_id, set_run_id, setup_logging
from mrf_loader.common.metrics import record_run_outcome, write_metrics
from mrf_loader.config.settings import Settings, get_settings
from mrf_loader.ingest.batch_writer import BatchWriteError
from mrf_loader.ingest.decoder import DecodeError
from mrf_loader.ingest.orchestrator import (
    BatchProgress,
    IngestionCancelled,
    IngestionOrchestrator,
    OrchestrationError,
)

logger = logging.getLogger(__name__)

FATAL_ERRORS = (
    DatabaseConnectionError,
    SchemaError,
    OrchestrationError,
    DecodeError,
    BatchWriteError,
    IngestionCancelled,
)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mrf-loader",
        description="Load MRF negotiated-rate JSON files into the relational catalog.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    parser.add_argument("--text-logs", action="store_true",
                        help="Plain text logs instead of JSON")

    commands = parser.add_subparsers(dest="command", required=True)

    ingest = commands.add_parser("ingest", help="Ingest a JSON file or a folder of JSON files")
    ingest.add_argument("path", help="File or directory to ingest")
    ingest.add_argument("--batch-size", type=_positive_int,
                        help="Services per transaction (default: BATCH_SIZE)")
    ingest.add_argument("--metrics-file",
                        help="Write Prometheus metrics to this textfile when done")
    ingest.add_argument("--sample", type=int, default=0, metavar="N",
                        help="Print N joined service/rate rows after the run")
    ingest.set_defaults(handler=cmd_ingest)

    create = commands.add_parser("create-database",
                                 help="Create DB_NAME on the server if it does not exist")
    create.set_defaults(handler=cmd_create_database)

    check = commands.add_parser("check-connection", help="Verify database connectivity")
    check.set_defaults(handler=cmd_check_connection)

    init_schema = commands.add_parser("init-schema", help="Create tables and indexes if absent")
    init_schema.set_defaults(handler=cmd_init_schema)

    stats = commands.add_parser("stats", help="Print row counts")
    stats.set_defaults(handler=cmd_stats)

    return parser


def _print_statistics(database: Database, sample: int = 0) -> None:
    reporter = StatisticsReporter(database)
    try:
        stats = reporter.summarize()
        print("Database statistics:")
        print(f"   Services: {stats.service_count}")
        print(f"   Negotiated Rates: {stats.rate_count}")
        if sample > 0:
            print("Sample data:")
            for row in reporter.sample_rates(sample):
                print(f"   {row.name} ({row.billing_code}) - ${row.negotiated_rate:.2f} "
                      f"({row.billing_class})")
    except ReportingError as e:
        # Reporting never changes the outcome of the run
        logger.warning(f"Failed to get statistics: {e}")


def _print_progress(progress: BatchProgress) -> None:
    print(f"Processed batch {progress.batch_number}/{progress.total_batches} "
          f"of {progress.source}", flush=True)


def cmd_ingest(args: argparse.Namespace, settings: Settings) -> int:
    if args.batch_size:
        settings = settings.model_copy(update={"batch_size": args.batch_size})

    database = Database(settings)
    stop_event = threading.Event()

    def request_stop(signum, frame):
        logger.warning("Interrupt received, stopping before the next batch")
        stop_event.set()

    previous_handler = signal.signal(signal.SIGINT, request_stop)
    try:
        database.verify_connection()
        database.ensure_schema()
        orchestrator = IngestionOrchestrator(
            database,
            settings=settings,
            progress_callback=_print_progress,
            stop_event=stop_event,
        )
        summary = orchestrator.ingest(args.path)
    except FATAL_ERRORS as e:
        logger.error(f"Ingestion failed: {e}")
        print(f"Ingestion failed: {e}", file=sys.stderr)
        record_run_outcome(False)
        return 1
    else:
        record_run_outcome(True)
        print(f"Ingested {summary.services} services and {summary.rates} negotiated rates "
              f"from {len(summary.files)} file(s)")
        _print_statistics(database, sample=args.sample)
        return 0
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        if args.metrics_file and settings.metrics_enabled:
            try:
                write_metrics(args.metrics_file)
            except OSError as e:
                logger.warning(f"Failed to write metrics to {args.metrics_file}: {e}")
        database.dispose()


def cmd_check_connection(args: argparse.Namespace, settings: Settings) -> int:
    database = Database(settings)
    try:
        info = database.server_info()
    except DatabaseConnectionError as e:
        print(f"Connection failed: {e}", file=sys.stderr)
        return 1
    finally:
        database.dispose()

    print("Database connection successful")
    print(f"   Dialect: {info['dialect']}")
    print(f"   Server version: {info['server_version']}")
    print(f"   Host: {info['host']}")
    print(f"   Database: {info['database']}")
    return 0


def cmd_create_database(args: argparse.Namespace, settings: Settings) -> int:
    try:
        created = create_database(settings)
    except (DatabaseConnectionError, SchemaError) as e:
        print(f"Database creation failed: {e}", file=sys.stderr)
        return 1

    name = build_database_url(settings).database
    if created:
        print(f"Created database {name}")
    else:
        print(f"Database {name} already exists")
    return 0


def cmd_init_schema(args: argparse.Namespace, settings: Settings) -> int:
    database = Database(settings)
    try:
        database.verify_connection()
        database.ensure_schema()
    except (DatabaseConnectionError, SchemaError) as e:
        print(f"Schema setup failed: {e}", file=sys.stderr)
        return 1
    finally:
        database.dispose()
    print("Tables insurance_services and negotiated_rates are in place")
    return 0


def cmd_stats(args: argparse.Namespace, settings: Settings) -> int:
    database = Database(settings)
    try:
        database.verify_connection()
    except DatabaseConnectionError as e:
        print(f"Connection failed: {e}", file=sys.stderr)
        database.dispose()
        return 1
    try:
        _print_statistics(database)
    finally:
        database.dispose()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_level or settings.log_level,
                  json_format=settings.log_json and not args.text_logs)
    run_id = set_run_id()
    logger.info(f"Starting {args.command}", extra={"extra_fields": {"run_id": run_id}})
    try:
        return args.handler(args, settings)
    finally:
        clear_run_id()


if __name__ == "__main__":
    sys.exit(main())

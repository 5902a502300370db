"""
Command-line interface for replaying SQS events through the organizer.

Usage:
    python -m log_organizer.cli.organize_cli process --event <event.json> [options]

The event file holds an SQS Lambda event (``{"Records": [...]}``), e.g. one
captured from CloudWatch Logs. Messages are deleted from the queue named in
each record's ``eventSourceARN`` once their group is written.
"""

import argparse
import json
import sys
from pathlib import Path

from log_organizer.config import Settings
from log_organizer.core.errors import ConfigurationError
from log_organizer.handler import get_s3_client, get_sqs_client
from log_organizer.observability.logger import configure_logging, get_logger
from log_organizer.observability.metrics import start_metrics_server
from log_organizer.pipeline import LogOrganizerPipeline

logger = get_logger(__name__)


def process_command(args) -> int:
    """
    Execute the process command.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    event_path = Path(args.event)
    if not event_path.exists():
        logger.error(f"Event file not found: {args.event}")
        return 1

    try:
        settings = Settings.from_env(env_file=args.env_file)
    except ConfigurationError as err:
        logger.error(f"Configuration error: {err}")
        return 1
    configure_logging(args.log_level or settings.log_level, settings.log_format)

    with open(event_path) as f:
        try:
            event = json.load(f)
        except json.JSONDecodeError as err:
            logger.error(f"Event file is not valid JSON: {err}")
            return 1

    records = event.get("Records") if isinstance(event, dict) else None
    if not isinstance(records, list):
        logger.error("Event file does not contain a 'Records' list")
        return 1

    metrics_port = args.metrics_port or settings.metrics_port
    if metrics_port:
        logger.info(f"Serving Prometheus metrics on port {metrics_port}")
        start_metrics_server(metrics_port)

    pipeline = LogOrganizerPipeline.from_settings(
        settings,
        s3_client=get_s3_client(args.endpoint_url),
        sqs_client=get_sqs_client(args.endpoint_url),
    )
    summary = pipeline.process_batch(records)

    for failure in summary.failures:
        logger.warning(f"Record {failure.message_id} failed: {failure.error}")
    print(json.dumps(summary.to_response(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Audit-log organizer CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Process command
    process_parser = subparsers.add_parser(
        "process",
        help="Process a stored SQS event file"
    )

    process_parser.add_argument(
        "--event",
        required=True,
        help="Path to an SQS event JSON file"
    )

    process_parser.add_argument(
        "--env-file",
        help="dotenv file with STAGE, PM_BUCKET_NAME, S3_KEY_BASE_PATH and retry settings"
    )

    process_parser.add_argument(
        "--endpoint-url",
        help="Custom AWS endpoint (e.g. http://localhost:4566 for LocalStack)"
    )

    process_parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port while processing"
    )

    process_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL"
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "process":
        return process_command(args)
    return 1


if __name__ == "__main__":
    sys.exit(main())

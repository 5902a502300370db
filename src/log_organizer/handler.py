"""
AWS Lambda entry point.

Configured as ``log_organizer.handler.handle`` on an SQS event source mapping.
"""

import json
from functools import lru_cache
from typing import Any

import boto3

from log_organizer.config import Settings
from log_organizer.core.partitioning import HashedApiKeyCache
from log_organizer.observability.logger import configure_logging, get_logger
from log_organizer.pipeline import LogOrganizerPipeline

logger = get_logger(__name__)

_logging_config: tuple[str, str] | None = None


@lru_cache(maxsize=None)
def get_s3_client(endpoint_url: str | None = None) -> Any:
    """Process-wide S3 client, reused across invocations."""
    return boto3.client("s3", endpoint_url=endpoint_url)


@lru_cache(maxsize=None)
def get_sqs_client(endpoint_url: str | None = None) -> Any:
    """Process-wide SQS client, reused across invocations."""
    return boto3.client("sqs", endpoint_url=endpoint_url)


def _apply_logging(settings: Settings) -> None:
    global _logging_config
    wanted = (settings.log_level, settings.log_format)
    if wanted != _logging_config:
        configure_logging(*wanted)
        _logging_config = wanted


def handle(
    event: dict[str, Any],
    context: Any = None,
    *,
    s3_client: Any = None,
    sqs_client: Any = None,
    cache: HashedApiKeyCache | None = None,
) -> dict[str, Any]:
    """
    Process an SQS event and store its records in S3 using Hive-style partitioning.

    Args:
        event: SQS Lambda event with a ``Records`` list
        context: Lambda context (unused)
        s3_client: S3 client override, defaults to the process-wide client
        sqs_client: SQS client override, defaults to the process-wide client
        cache: API-key hash cache override, defaults to the process-wide cache

    Returns:
        ``{"statusCode": 200, "body": {...counts...}}``, also when some records failed

    Raises:
        ConfigurationError: If required settings are missing; no record is processed
    """
    logger.debug(f"Received event: {json.dumps(event, default=str)}")

    try:
        settings = Settings.from_env()
        _apply_logging(settings)

        records = event.get("Records")
        if not isinstance(records, list):
            raise ValueError("Event does not contain a 'Records' list")

        pipeline = LogOrganizerPipeline.from_settings(
            settings,
            s3_client=s3_client if s3_client is not None else get_s3_client(),
            sqs_client=sqs_client if sqs_client is not None else get_sqs_client(),
            cache=cache,
        )
        summary = pipeline.process_batch(records)
        return summary.to_response()
    except Exception as err:
        logger.error(f"Fatal error in handler: {err}", exc_info=True)
        raise

"""
Structured JSON logging for the audit-log organizer

Every record is written to stdout as one JSON document, which Lambda forwards
to CloudWatch Logs. Extra fields (message_id, partition_key, s3_key,
call_site, ...) become top-level keys that Logs Insights can filter on.
Set LOG_FORMAT=text for readable output when running the CLI locally.
"""
import logging
import os
import sys
import time

from pythonjsonlogger.json import JsonFormatter

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

DEFAULT_LOGGER_NAME = "log-organizer"

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(message)s"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class CustomJsonFormatter(JsonFormatter):
    """
    JSON formatter adding the fields every organizer log line carries

    Adds: timestamp, level, logger, function, line, and stage and
    aws_request_id when the environment provides them
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = log_record.get("timestamp") or self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        for field, variable in (("stage", "STAGE"), ("aws_request_id", "AWS_LAMBDA_REQUEST_ID")):
            value = os.getenv(variable)
            if value:
                log_record[field] = value


def _build_formatter(format_type: str) -> logging.Formatter:
    if format_type == "text":
        return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return CustomJsonFormatter(JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Setup and configure a logger

    Replaces any handler installed earlier, so calling it again with new
    settings reconfigures the logger in place.

    Args:
        name: Logger name
        level: Log level name, defaults to LOG_LEVEL, then INFO
        format_type: "json" or "text", defaults to LOG_FORMAT, then json

    Returns:
        Configured logger instance
    """
    log_level = LOG_LEVELS.get((level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(format_type or os.getenv("LOG_FORMAT", "json")))

    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(log_level)
    # The Lambda runtime installs its own root handler; propagating would log twice
    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Return the named logger, configuring it from the environment on first use."""
    logger = logging.getLogger(name)
    return logger if logger.handlers else setup_logger(name)


def configure_logging(level: str, format_type: str) -> None:
    """
    Reconfigure every organizer logger already created, e.g. after settings load

    Args:
        level: Log level name
        format_type: "json" or "text"
    """
    for name in list(logging.root.manager.loggerDict):
        if name == DEFAULT_LOGGER_NAME or name.startswith("log_organizer"):
            setup_logger(name, level=level, format_type=format_type)


class log_operation:
    """
    Context manager logging the start, outcome and duration of an operation

    Fields passed to ``add`` inside the block are included in the completion
    line, so results are logged next to the timing.

    Usage:
        with log_operation("Processing batch", logger=logger, batch_size=10) as op:
            summary = ...
            op.add(failed_records=summary.failed_records)
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.fields = {"operation": operation_name, **extra_fields}
        self.started_at: float | None = None

    def add(self, **fields) -> None:
        self.fields.update(fields)

    def __enter__(self) -> "log_operation":
        self.started_at = time.monotonic()
        self.logger.info(f"Started {self.operation_name}", extra=self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        fields = {**self.fields, "duration_seconds": round(time.monotonic() - self.started_at, 3)}

        if exc_type is None:
            self.logger.info(f"Finished {self.operation_name}", extra={**fields, "status": "success"})
        else:
            self.logger.error(
                f"{self.operation_name} failed: {exc_val}",
                extra={**fields, "status": "error", "error_type": exc_type.__name__},
                exc_info=(exc_type, exc_val, exc_tb),
            )
        # Exceptions propagate to the caller
        return False

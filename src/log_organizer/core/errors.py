"""
Exception hierarchy for the audit-log organizer.

ConfigurationError is fatal for an invocation. Every other error is caught at
the record or group scope and reported in the outcome summary.
"""


class LogOrganizerError(Exception):
    """Base class for all organizer errors."""


class ConfigurationError(LogOrganizerError):
    """Raised when required configuration is missing or malformed."""

    def __init__(self, message: str, missing: list[str] | None = None):
        self.missing = missing or []
        super().__init__(message)


class DecodeError(LogOrganizerError):
    """Raised when a message body is not valid JSON."""


class ValidationError(LogOrganizerError):
    """Raised when a decoded record is missing mandatory fields."""

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing mandatory fields: {', '.join(self.missing_fields)}")


class PartitionKeyError(LogOrganizerError):
    """Raised when a partition key cannot be derived from a record."""


class RetryExhaustedError(LogOrganizerError):
    """Raised when a retried call fails on its final attempt."""

    def __init__(self, call_site: str, attempts: int, last_error: BaseException):
        self.call_site = call_site
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{call_site} failed after {attempts} attempt(s): {last_error}")


class WriteError(LogOrganizerError):
    """Raised when a partition group could not be persisted."""

    def __init__(self, message: str, partition_key: str):
        self.partition_key = partition_key
        super().__init__(message)


class AcknowledgeError(LogOrganizerError):
    """Raised when a queue message could not be deleted."""

    def __init__(self, message: str, queue_url: str, receipt_handle: str, message_id: str):
        self.queue_url = queue_url
        self.receipt_handle = receipt_handle
        self.message_id = message_id
        super().__init__(message)

"""
Core data models for the audit-log organizer.

All models use Pydantic for runtime validation and type safety.
"""

from .data_record import DataRecord
from .outcome import OutcomeSummary, RecordFailure, RecordSuccess
from .parsed_record import ParsedRecord
from .partition_group import PartitionGroup
from .raw_message import RawMessage, queue_url_from_arn

__all__ = [
    "RawMessage",
    "DataRecord",
    "ParsedRecord",
    "PartitionGroup",
    "OutcomeSummary",
    "RecordFailure",
    "RecordSuccess",
    "queue_url_from_arn",
]

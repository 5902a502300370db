"""
Groups parsed records by partition key.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from log_organizer.core.errors import PartitionKeyError
from log_organizer.core.models import ParsedRecord, PartitionGroup, RecordFailure
from log_organizer.observability.logger import get_logger

from .partition_key import PartitionKeyDeriver

logger = get_logger(__name__)


@dataclass
class GroupingResult:
    """Groups in first-sighting order, plus records whose key could not be derived."""

    groups: list[PartitionGroup] = field(default_factory=list)
    failures: list[RecordFailure] = field(default_factory=list)


class PartitionGrouper:
    """
    Buckets records sharing an identical partition key.

    Single pass over the input. Records keep their input order inside a group,
    and groups are ordered by the first record seen for each key.
    """

    def __init__(self, deriver: PartitionKeyDeriver | None = None):
        self.deriver = deriver or PartitionKeyDeriver()

    def group(self, records: Iterable[ParsedRecord]) -> GroupingResult:
        groups: dict[str, PartitionGroup] = {}
        failures: list[RecordFailure] = []

        for record in records:
            try:
                key = self.deriver.derive(record.data_record)
            except PartitionKeyError as err:
                logger.error(
                    f"Skipping record {record.message_id}: {err}",
                    extra={"message_id": record.message_id},
                )
                failures.append(RecordFailure(message_id=record.message_id, error=str(err)))
                continue

            group = groups.get(key)
            if group is None:
                group = groups[key] = PartitionGroup(key=key)
            group.append(record)

        return GroupingResult(groups=list(groups.values()), failures=failures)

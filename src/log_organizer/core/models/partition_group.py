"""
PartitionGroup model: records that share one partition key.
"""

from pydantic import BaseModel, Field

from .parsed_record import ParsedRecord


class PartitionGroup(BaseModel):
    """
    Ordered records sharing one partition key.

    Records are appended only while grouping; afterwards the group is written
    and acknowledged as a unit.
    """

    key: str = Field(..., min_length=1)
    records: list[ParsedRecord] = Field(default_factory=list)

    def append(self, record: ParsedRecord) -> None:
        self.records.append(record)

    @property
    def message_ids(self) -> list[str]:
        return [record.message_id for record in self.records]

    def __len__(self) -> int:
        return len(self.records)

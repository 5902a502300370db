"""
Outcome models summarising one batch invocation.
"""

from typing import Any

from pydantic import BaseModel, Field, computed_field


class RecordFailure(BaseModel):
    """A record that did not complete the pipeline, with the reason why."""

    message_id: str
    error: str


class RecordSuccess(BaseModel):
    """A record that was written and whose queue message was deleted."""

    message_id: str
    s3_key: str


class OutcomeSummary(BaseModel):
    """
    Result of processing one delivered batch.

    Attributes:
        total_records: Number of messages in the batch
        groups_processed: Number of partition groups written successfully
        successes: Records written and acknowledged
        failures: Records that failed at any stage, with reasons
    """

    total_records: int = Field(0, ge=0)
    groups_processed: int = Field(0, ge=0)
    successes: list[RecordSuccess] = Field(default_factory=list)
    failures: list[RecordFailure] = Field(default_factory=list)

    @computed_field
    @property
    def successful_records(self) -> int:
        return len(self.successes)

    @computed_field
    @property
    def failed_records(self) -> int:
        return len(self.failures)

    def record_success(self, message_id: str, s3_key: str) -> None:
        self.successes.append(RecordSuccess(message_id=message_id, s3_key=s3_key))

    def record_failure(self, message_id: str, error: str) -> None:
        self.failures.append(RecordFailure(message_id=message_id, error=error))

    def to_response(self) -> dict[str, Any]:
        """Render the handler response returned to the caller."""
        return {
            "statusCode": 200,
            "body": {
                "totalRecords": self.total_records,
                "successfulRecords": self.successful_records,
                "failedRecords": self.failed_records,
                "groupsProcessed": self.groups_processed,
            },
        }

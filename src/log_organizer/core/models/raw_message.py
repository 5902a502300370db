"""
RawMessage model representing a single message delivered by the queue (ephemeral).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def queue_url_from_arn(arn: str) -> str:
    """
    Derive the queue URL from an SQS event source ARN.

    Args:
        arn: ARN such as ``arn:aws:sqs:eu-west-1:123456789012:audit-logs``

    Returns:
        URL such as ``https://sqs.eu-west-1.amazonaws.com/123456789012/audit-logs``

    Raises:
        ValueError: If the ARN does not have the service:region:account:name shape
    """
    parts = (arn or "").split(":")
    if len(parts) < 6 or not all(parts[2:6]):
        raise ValueError(f"Cannot derive queue URL from ARN: {arn!r}")
    service, region, account_id, queue_name = parts[2:6]
    return f"https://{service}.{region}.amazonaws.com/{account_id}/{queue_name}"


class RawMessage(BaseModel):
    """
    A message as delivered by the queue, before decoding.

    Attributes:
        message_id: Unique message identifier assigned by the queue
        receipt_handle: Opaque deletion token for this delivery
        body: Raw message body text
        event_source_arn: ARN of the source queue
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    message_id: str = Field(..., min_length=1, alias="messageId")
    receipt_handle: str = Field(..., min_length=1, alias="receiptHandle")
    body: str = ""
    event_source_arn: str = Field("", alias="eventSourceARN")

    @classmethod
    def from_sqs_record(cls, record: dict[str, Any]) -> "RawMessage":
        """Build from one entry of an SQS Lambda event's ``Records`` list."""
        return cls.model_validate(record)

    @property
    def queue_url(self) -> str:
        return queue_url_from_arn(self.event_source_arn)

"""
ParsedRecord model pairing a decoded record with the queue details needed to delete it.
"""

from pydantic import BaseModel, ConfigDict, Field

from .data_record import DataRecord


class ParsedRecord(BaseModel):
    """
    A validated record together with its originating queue message.

    Created once the message body is decoded and validated. It is discarded
    after its deletion is acknowledged or has permanently failed.

    Attributes:
        data_record: Decoded audit-log record
        receipt_handle: Deletion token of the originating message
        message_id: Identifier of the originating message
        queue_url: URL of the queue the message was delivered from
    """

    model_config = ConfigDict(frozen=True)

    data_record: DataRecord
    receipt_handle: str = Field(..., min_length=1)
    message_id: str = Field(..., min_length=1)
    queue_url: str = Field(..., min_length=1)

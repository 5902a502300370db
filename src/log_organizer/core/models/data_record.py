"""
DataRecord model representing one decoded audit-log message (ephemeral).
"""

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


class DataRecord(BaseModel):
    """
    A decoded audit-log record.

    The attributes used for partitioning are exposed as snake_case fields but
    accept any JSON value: only the mandatory-field check gates a record, so a
    ``partner`` of ``true`` or a numeric ``clientId`` is stored as received.
    Every other attribute of the message (step status, correlation id, ...) is
    kept as a pydantic extra.

    The decoded payload is retained unchanged so the stored line has the same
    keys, key order and value types as the message body.

    Attributes:
        message_type: Kind of audit message (wire name ``messageType``)
        project_code: Owning project (``projectCode``)
        partner: Partner the event belongs to
        customer: Customer the event belongs to
        client_id: Client identifier (``clientId``)
        api_key_id: Raw API-key identifier, only ever persisted in hashed form in keys (``apiKeyId``)
        region: Region code
        country: Country code
        component: Emitting component
        env: Optional environment name
        date_time: Event timestamp, ISO-8601 or epoch milliseconds (``dateTime``)
    """

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "messageType": "audit_record",
                "projectCode": "intel",
                "partner": "test-partner",
                "customer": "test-customer",
                "region": "eu",
                "country": "it",
                "component": "test-ip-intel",
                "dateTime": "2025-05-17T19:50:16.306Z",
                "stepCategory": "invocation",
                "stepStatus": "success",
            }
        },
    )

    message_type: Any = Field(None, alias="messageType")
    project_code: Any = Field(None, alias="projectCode")
    partner: Any = None
    customer: Any = None
    client_id: Any = Field(None, alias="clientId")
    api_key_id: Any = Field(None, alias="apiKeyId")
    region: Any = None
    country: Any = None
    component: Any = None
    env: Any = None
    date_time: Any = Field(None, alias="dateTime")

    _payload: dict[str, Any] | None = PrivateAttr(default=None)

    @model_validator(mode="wrap")
    @classmethod
    def _keep_payload(cls, data: Any, handler: Any) -> "DataRecord":
        record = handler(data)
        if isinstance(data, Mapping):
            record._payload = dict(data)
        return record

    def is_present(self, field_name: str) -> bool:
        """True if the attribute was in the message, even with a ``null`` value."""
        return field_name in self.model_fields_set

    def to_wire(self) -> dict[str, Any]:
        """Return the record as received: original keys, order and value types."""
        if self._payload is not None:
            return dict(self._payload)
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def to_json_line(self) -> str:
        """Serialize as a single compact JSON document (one NDJSON line, no newline)."""
        return json.dumps(self.to_wire(), separators=(",", ":"), ensure_ascii=False)

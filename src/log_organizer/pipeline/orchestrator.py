"""
Batch processing pipeline orchestration.

Coordinates the flow: decode → validate → group → write → acknowledge
"""

import json
import time
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from log_organizer.config import S3_PUT_CALL_SITE, SQS_DELETE_CALL_SITE, Settings
from log_organizer.core.errors import AcknowledgeError, DecodeError, ValidationError, WriteError
from log_organizer.core.models import DataRecord, OutcomeSummary, ParsedRecord, PartitionGroup, RawMessage
from log_organizer.core.partitioning import HashedApiKeyCache, PartitionGrouper, PartitionKeyDeriver
from log_organizer.core.validators import BaseValidator, RequiredFieldValidator
from log_organizer.messaging import SqsAcknowledger
from log_organizer.observability.logger import get_logger, log_operation
from log_organizer.observability.metrics import MetricsCollector
from log_organizer.storage import S3GroupWriter

logger = get_logger(__name__)


def decode_body(body: str) -> Any:
    """
    Decode a message body as JSON.

    Raises:
        DecodeError: If the body is not valid JSON
    """
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError) as err:
        raise DecodeError(str(err)) from err


def _describe(err: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'record'}: {error['msg']}"
        for error in err.errors()
    )


class LogOrganizerPipeline:
    """
    Orchestrates one delivered batch of audit-log messages.

    Flow:
    1. Decode each message body as JSON
    2. Check mandatory fields
    3. Group valid records by partition key
    4. Write each group to S3 as one NDJSON object
    5. Delete each group member's queue message, only after its group was written

    Failures are isolated: a bad record or group is reported in the outcome
    summary and the rest of the batch carries on.
    """

    def __init__(
        self,
        writer: S3GroupWriter,
        acknowledger: SqsAcknowledger,
        grouper: PartitionGrouper | None = None,
        validator: BaseValidator | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize pipeline.

        Args:
            writer: Persists partition groups
            acknowledger: Deletes queue messages
            grouper: Groups records by partition key (default uses the process-wide hash cache)
            validator: Mandatory-field validator
            metrics: Metrics collector
        """
        self.writer = writer
        self.acknowledger = acknowledger
        self.grouper = grouper or PartitionGrouper()
        self.validator = validator or RequiredFieldValidator()
        self.metrics = metrics or MetricsCollector()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        s3_client: Any,
        sqs_client: Any,
        cache: HashedApiKeyCache | None = None,
    ) -> "LogOrganizerPipeline":
        """
        Wire a pipeline from validated settings and AWS clients.

        Args:
            settings: Runtime settings
            s3_client: boto3 S3 client
            sqs_client: boto3 SQS client
            cache: API-key hash cache (defaults to the process-wide one)
        """
        metrics = MetricsCollector()
        policies = settings.retry_policies
        writer = S3GroupWriter(
            s3_client,
            bucket_name=settings.bucket_name,
            key_base_path=settings.key_base_path,
            retry_policy=policies.for_call_site(S3_PUT_CALL_SITE),
            call_site=S3_PUT_CALL_SITE,
            metrics=metrics,
        )
        acknowledger = SqsAcknowledger(
            sqs_client,
            retry_policy=policies.for_call_site(SQS_DELETE_CALL_SITE),
            call_site=SQS_DELETE_CALL_SITE,
            metrics=metrics,
        )
        grouper = PartitionGrouper(PartitionKeyDeriver(cache))
        return cls(writer, acknowledger, grouper=grouper, metrics=metrics)

    def process_batch(self, messages: Sequence[RawMessage | Mapping[str, Any]]) -> OutcomeSummary:
        """
        Process a delivered batch through the complete pipeline.

        Args:
            messages: RawMessages, or SQS event record dicts

        Returns:
            OutcomeSummary with counts and per-record failures
        """
        started_at = time.monotonic()
        summary = OutcomeSummary(total_records=len(messages))

        with log_operation("batch", logger=logger, batch_size=len(messages)) as operation:
            parsed_records = []
            for message in messages:
                parsed = self._parse_message(message, summary)
                if parsed is not None:
                    parsed_records.append(parsed)

            grouping = self.grouper.group(parsed_records)
            summary.failures.extend(grouping.failures)
            self.metrics.record_failure("partition", len(grouping.failures))
            logger.info(
                f"Grouped {len(parsed_records) - len(grouping.failures)} records "
                f"into {len(grouping.groups)} partitions"
            )

            for group in grouping.groups:
                self._process_group(group, summary)

            operation.add(
                total_records=summary.total_records,
                successful_records=summary.successful_records,
                failed_records=summary.failed_records,
                groups_processed=summary.groups_processed,
            )

        self.metrics.record_batch(
            total_records=summary.total_records,
            successful=summary.successful_records,
            failed=summary.failed_records,
            duration_seconds=time.monotonic() - started_at,
        )
        return summary

    def _parse_message(
        self,
        message: RawMessage | Mapping[str, Any],
        summary: OutcomeSummary,
    ) -> ParsedRecord | None:
        """Decode and validate one message; record a failure and return None if it is unusable."""
        try:
            raw = message if isinstance(message, RawMessage) else RawMessage.from_sqs_record(message)
        except PydanticValidationError as err:
            message_id = message.get("messageId") if isinstance(message, Mapping) else None
            return self._reject(summary, message_id or "unknown", "validate", f"Invalid queue message: {_describe(err)}")

        try:
            payload = decode_body(raw.body)
        except DecodeError as err:
            return self._reject(summary, raw.message_id, "decode", f"Failed to parse JSON body: {err}")

        try:
            self.validator.validate(payload)
            data_record = DataRecord.model_validate(payload)
        except ValidationError as err:
            return self._reject(summary, raw.message_id, "validate", str(err))
        except PydanticValidationError as err:
            return self._reject(summary, raw.message_id, "validate", f"Invalid record: {_describe(err)}")

        try:
            queue_url = raw.queue_url
        except ValueError as err:
            return self._reject(summary, raw.message_id, "validate", f"Invalid event source: {err}")

        return ParsedRecord(
            data_record=data_record,
            receipt_handle=raw.receipt_handle,
            message_id=raw.message_id,
            queue_url=queue_url,
        )

    def _reject(self, summary: OutcomeSummary, message_id: str, stage: str, reason: str) -> None:
        logger.error(f"Skipping record {message_id}: {reason}", extra={"message_id": message_id})
        summary.record_failure(message_id, reason)
        self.metrics.record_failure(stage)
        return None

    def _process_group(self, group: PartitionGroup, summary: OutcomeSummary) -> None:
        """Write one group, then acknowledge its members; never acknowledge before the write succeeds."""
        try:
            s3_key = self.writer.write_group(group)
        except WriteError as err:
            logger.error(
                f"Failed to process group {group.key}: {err}",
                extra={"partition_key": group.key, "record_count": len(group)},
            )
            for record in group.records:
                summary.record_failure(record.message_id, str(err))
            self.metrics.record_failure("write", len(group))
            return

        for record in group.records:
            try:
                self.acknowledger.acknowledge(record)
            except AcknowledgeError as err:
                summary.record_failure(record.message_id, str(err))
                self.metrics.record_failure("acknowledge")
                continue
            summary.record_success(record.message_id, s3_key)

        summary.groups_processed += 1

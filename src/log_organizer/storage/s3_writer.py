"""
S3 writer for partition groups.

Each group becomes one newline-delimited JSON object stored under its
partition key. A random UUID file name keeps concurrent invocations that
write to the same partition from overwriting each other; objects are never
read back or replaced.
"""

import time
import uuid
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from log_organizer.config import RetryPolicy
from log_organizer.core.errors import WriteError
from log_organizer.core.models import PartitionGroup
from log_organizer.observability.logger import get_logger
from log_organizer.observability.metrics import MetricsCollector
from log_organizer.utils.retry import call_with_retry

logger = get_logger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"
TRANSIENT_ERRORS = (ClientError, BotoCoreError)


def serialize_group(group: PartitionGroup) -> bytes:
    """Render a group as NDJSON: one record per line, in group order, no trailing newline."""
    return "\n".join(record.data_record.to_json_line() for record in group.records).encode("utf-8")


class S3GroupWriter:
    """
    Persists partition groups to S3.

    Keys have the form ``<key_base_path>/<partition key>/<uuid>.json``.
    """

    def __init__(
        self,
        client: Any,
        bucket_name: str,
        key_base_path: str,
        retry_policy: RetryPolicy,
        call_site: str = "S3_PUT",
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize S3 group writer.

        Args:
            client: boto3 S3 client (or any object with a compatible put_object)
            bucket_name: Target bucket
            key_base_path: Prefix for every object key
            retry_policy: Retry policy for put_object
            call_site: Identifier used in retry logs and metrics
            metrics: Metrics collector for tracking writes
        """
        self.client = client
        self.bucket_name = bucket_name
        self.key_base_path = key_base_path.rstrip("/")
        self.retry_policy = retry_policy
        self.call_site = call_site
        self.metrics = metrics or MetricsCollector()

    def object_key(self, group: PartitionGroup) -> str:
        return f"{self.key_base_path}/{group.key}/{uuid.uuid4()}.json"

    def write_group(self, group: PartitionGroup) -> str:
        """
        Write all records of a group as a single object.

        Args:
            group: Partition group to persist

        Returns:
            The full object key written

        Raises:
            WriteError: If the object could not be stored; nothing of the group is persisted
        """
        started_at = time.monotonic()
        key = self.object_key(group)
        body = serialize_group(group)

        try:
            call_with_retry(
                lambda: self.client.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=body,
                    ContentType=NDJSON_CONTENT_TYPE,
                ),
                self.retry_policy,
                call_site=self.call_site,
                retry_on=TRANSIENT_ERRORS,
            )
        except Exception as err:
            self.metrics.record_group_write(len(group), success=False, started_at=started_at)
            message = f"Failed to save record group to S3 with key {group.key}"
            logger.error(
                f"{message}: {err}",
                extra={"partition_key": group.key, "s3_key": key, "record_count": len(group)},
            )
            raise WriteError(message, partition_key=group.key) from err

        self.metrics.record_group_write(len(group), success=True, started_at=started_at)
        logger.debug(
            f"Saved {len(group)} records to s3://{self.bucket_name}/{key}",
            extra={"partition_key": group.key, "s3_key": key, "record_count": len(group)},
        )
        return key

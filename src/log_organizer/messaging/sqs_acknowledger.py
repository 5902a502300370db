"""
SQS acknowledger: deletes a consumed message once its record is persisted.
"""

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from log_organizer.config import RetryPolicy
from log_organizer.core.errors import AcknowledgeError
from log_organizer.core.models import ParsedRecord
from log_organizer.observability.logger import get_logger
from log_organizer.observability.metrics import MetricsCollector
from log_organizer.utils.retry import call_with_retry

logger = get_logger(__name__)

TRANSIENT_ERRORS = (ClientError, BotoCoreError)


class SqsAcknowledger:
    """
    Deletes queue messages by receipt handle, under bounded retry.

    Callers must only acknowledge a record after its group has been written:
    a message deleted before a failed write is lost, and a message not deleted
    after a failed write is redelivered, which is the only recovery path.
    """

    def __init__(
        self,
        client: Any,
        retry_policy: RetryPolicy,
        call_site: str = "SQS_DELETE",
        metrics: MetricsCollector | None = None,
    ):
        """
        Args:
            client: boto3 SQS client (or any object with a compatible delete_message)
            retry_policy: Retry policy for delete_message
            call_site: Identifier used in retry logs and metrics
            metrics: Metrics collector for tracking deletions
        """
        self.client = client
        self.retry_policy = retry_policy
        self.call_site = call_site
        self.metrics = metrics or MetricsCollector()

    def acknowledge(self, record: ParsedRecord) -> None:
        """
        Delete the queue message a record came from.

        Raises:
            AcknowledgeError: If the message could not be deleted
        """
        queue_url = record.queue_url
        context = {"message_id": record.message_id, "queue_url": queue_url}
        logger.debug(
            f"DELETING message {record.message_id} from {queue_url} "
            f"with receipt handle: {record.receipt_handle}",
            extra=context,
        )

        try:
            call_with_retry(
                lambda: self.client.delete_message(
                    QueueUrl=queue_url,
                    ReceiptHandle=record.receipt_handle,
                ),
                self.retry_policy,
                call_site=self.call_site,
                retry_on=TRANSIENT_ERRORS,
            )
        except Exception as err:
            self.metrics.record_acknowledgement(success=False)
            message = (
                f"Error in deleting the message from sqs queue {queue_url} "
                f"with receipt handle: {record.receipt_handle}, message Id: {record.message_id}"
            )
            logger.error(f"{message}: {err}", extra=context)
            raise AcknowledgeError(
                message,
                queue_url=queue_url,
                receipt_handle=record.receipt_handle,
                message_id=record.message_id,
            ) from err

        self.metrics.record_acknowledgement(success=True)
        logger.debug(f"DELETED message {record.message_id} from {queue_url}", extra=context)

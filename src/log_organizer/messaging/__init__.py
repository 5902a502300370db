"""
Queue acknowledgement.
"""

from .sqs_acknowledger import SqsAcknowledger

__all__ = [
    "SqsAcknowledger",
]

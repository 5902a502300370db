"""
Audit-log organizer: groups SQS audit messages into Hive-partitioned NDJSON objects on S3.
"""

__version__ = "0.1.0"

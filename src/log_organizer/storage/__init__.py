"""
Object storage writers.
"""

from .s3_writer import NDJSON_CONTENT_TYPE, S3GroupWriter, serialize_group

__all__ = [
    "S3GroupWriter",
    "serialize_group",
    "NDJSON_CONTENT_TYPE",
]

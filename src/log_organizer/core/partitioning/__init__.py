"""
Partition key derivation and record grouping.
"""

from .api_key_cache import UNDEFINED_API_KEY, HashedApiKeyCache, default_cache
from .grouper import GroupingResult, PartitionGrouper
from .partition_key import PartitionKeyDeriver, parse_event_timestamp, render_value

__all__ = [
    "HashedApiKeyCache",
    "default_cache",
    "UNDEFINED_API_KEY",
    "PartitionKeyDeriver",
    "parse_event_timestamp",
    "render_value",
    "PartitionGrouper",
    "GroupingResult",
]

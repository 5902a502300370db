"""
Partition key derivation.

Builds the Hive-style key a record is stored under, e.g.::

    env=prod/message_type=audit_record/project_code=intel/partner=p/customer=c/
    client_id=undefined/hashed_api_key=undefined/region=eu/country=it/
    component=ip-intel/year=2025/month=05/day=17/hour=19

Every segment is always rendered, whatever JSON value the attribute holds:

- an attribute absent from the message renders as ``undefined``
- a JSON ``null`` renders as ``null``, so it partitions apart from absent
- booleans render as ``true`` / ``false``
- integral numbers render without a fraction (``7``, not ``7.0``)
- objects and arrays render as compact JSON
- strings are used verbatim, an empty string giving an empty value

No escaping is applied, so upstream producers must send path-safe values.
"""

import json
from datetime import datetime, timezone
from typing import Any

from log_organizer.core.errors import PartitionKeyError
from log_organizer.core.models import DataRecord

from .api_key_cache import HashedApiKeyCache, default_cache

UNDEFINED_SEGMENT_VALUE = "undefined"


def parse_event_timestamp(value: Any) -> datetime:
    """
    Parse an event timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (``Z`` or explicit offset; naive values are taken
    as UTC) and numeric epoch milliseconds.

    Raises:
        PartitionKeyError: If the value is missing or cannot be parsed
    """
    if value is None or isinstance(value, bool) or value == "":
        raise PartitionKeyError(f"Invalid event timestamp: {value!r}")

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as err:
            raise PartitionKeyError(f"Invalid event timestamp: {value!r}") from err

    text = str(value).strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as err:
        raise PartitionKeyError(f"Invalid event timestamp: {value!r}") from err

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def render_value(value: Any) -> str:
    """Render one JSON value as a partition segment value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


class PartitionKeyDeriver:
    """
    Derives partition keys from records.

    Pure apart from the injected hash cache: the same record always yields the
    same key, byte for byte.
    """

    def __init__(self, cache: HashedApiKeyCache | None = None):
        self.cache = cache if cache is not None else default_cache

    @staticmethod
    def _attribute(record: DataRecord, field_name: str) -> str:
        if not record.is_present(field_name):
            return UNDEFINED_SEGMENT_VALUE
        return render_value(getattr(record, field_name))

    def _hashed_api_key(self, record: DataRecord) -> str:
        api_key_id = record.api_key_id
        # Falsy identifiers (absent, null, "", 0, false) map to the cache's sentinel
        return self.cache.hash(render_value(api_key_id) if api_key_id else None)

    def segments(self, record: DataRecord) -> list[tuple[str, str]]:
        """Return the ordered ``(name, value)`` pairs making up the key, without ``env``."""
        timestamp = parse_event_timestamp(record.date_time)
        return [
            ("message_type", self._attribute(record, "message_type")),
            ("project_code", self._attribute(record, "project_code")),
            ("partner", self._attribute(record, "partner")),
            ("customer", self._attribute(record, "customer")),
            ("client_id", self._attribute(record, "client_id")),
            ("hashed_api_key", self._hashed_api_key(record)),
            ("region", self._attribute(record, "region")),
            ("country", self._attribute(record, "country")),
            ("component", self._attribute(record, "component")),
            ("year", f"{timestamp.year:04d}"),
            ("month", f"{timestamp.month:02d}"),
            ("day", f"{timestamp.day:02d}"),
            ("hour", f"{timestamp.hour:02d}"),
        ]

    def derive(self, record: DataRecord) -> str:
        """
        Build the partition key for a record.

        Raises:
            PartitionKeyError: If the record's timestamp is missing or invalid
        """
        key = "/".join(f"{name}={value}" for name, value in self.segments(record))
        if record.env:
            key = f"env={render_value(record.env)}/{key}"
        return key

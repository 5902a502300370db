"""
RequiredFieldValidator - ensures mandatory fields are present and truthy.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from .base_validator import BaseValidator

MANDATORY_FIELDS = ("messageType", "projectCode", "component")


class RequiredFieldValidator(BaseValidator):
    """
    Validates that every required field holds a truthy value.

    A field is missing if:
    - the record is not a JSON object (every field is then missing)
    - the field is absent from the record
    - its value is falsy: None, "", 0, False or an empty container

    Only presence is checked; types and formats are not.
    """

    def __init__(self, field_names: Iterable[str] = MANDATORY_FIELDS):
        super().__init__(field_names)

    def find_violations(self, record: Any) -> list[str]:
        if not isinstance(record, Mapping):
            return list(self.field_names)
        return [name for name in self.field_names if not record.get(name)]

    missing_fields = find_violations

    @property
    def rule_type(self) -> str:
        return "required_field"

"""
Record validation rules.
"""

from log_organizer.core.errors import ValidationError

from .base_validator import BaseValidator
from .required_field_validator import MANDATORY_FIELDS, RequiredFieldValidator

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "MANDATORY_FIELDS",
]

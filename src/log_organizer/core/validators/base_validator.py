"""
Base validator interface for decoded records.

All validators must inherit from BaseValidator and implement find_violations().
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from log_organizer.core.errors import ValidationError


class BaseValidator(ABC):
    """
    Abstract base class for record validators.

    A validator inspects a decoded message body of unknown shape and reports
    the names of the fields that violate its rule.
    """

    def __init__(self, field_names: Iterable[str]):
        """
        Initialize validator.

        Args:
            field_names: Names of the fields this rule applies to, in reporting order
        """
        self.field_names = tuple(field_names)

    @abstractmethod
    def find_violations(self, record: Any) -> list[str]:
        """
        Return the fields of ``record`` that violate this rule.

        Args:
            record: Decoded message body (any JSON value)

        Returns:
            Offending field names, empty when the record passes
        """

    def validate(self, record: Any) -> None:
        """
        Raises:
            ValidationError: If any field violates this rule
        """
        violations = self.find_violations(record)
        if violations:
            raise ValidationError(violations)

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Return the rule type identifier."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(fields={list(self.field_names)})"

"""
Unit tests for validation rules.

Includes property-based testing with hypothesis for the mandatory-field check.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from factories import make_audit_record
from log_organizer.core.validators import (
    MANDATORY_FIELDS,
    BaseValidator,
    RequiredFieldValidator,
    ValidationError,
)


class TestRequiredFieldValidator:
    """Tests for RequiredFieldValidator"""

    def test_valid_record_passes(self):
        """Test validation passes when all mandatory fields are present"""
        validator = RequiredFieldValidator()
        validator.validate(make_audit_record())  # Should not raise

    def test_default_fields(self):
        assert RequiredFieldValidator().field_names == ("messageType", "projectCode", "component")

    def test_missing_field_raises_error(self):
        """Test validation fails for an absent field"""
        validator = RequiredFieldValidator()

        with pytest.raises(ValidationError) as exc_info:
            validator.validate(make_audit_record(component=None))

        assert exc_info.value.missing_fields == ["component"]
        assert str(exc_info.value) == "Missing mandatory fields: component"

    def test_all_missing_fields_reported_in_order(self):
        validator = RequiredFieldValidator()
        record = make_audit_record(messageType=None, component=None)

        assert validator.missing_fields(record) == ["messageType", "component"]

    @pytest.mark.parametrize("value", ["", None, 0, False, [], {}])
    def test_falsy_value_is_missing(self, value):
        """Test that falsy values count as missing"""
        validator = RequiredFieldValidator()
        record = make_audit_record()
        record["projectCode"] = value

        assert validator.find_violations(record) == ["projectCode"]

    def test_whitespace_counts_as_present(self):
        """Test that only presence is checked, not content"""
        validator = RequiredFieldValidator()
        assert validator.find_violations(make_audit_record(component=" ")) == []

    @pytest.mark.parametrize("payload", [None, "audit_record", 42, ["messageType"], True])
    def test_non_object_body_misses_every_field(self, payload):
        """Test that JSON values other than objects fail every field"""
        validator = RequiredFieldValidator()
        assert validator.find_violations(payload) == list(MANDATORY_FIELDS)

    def test_custom_field_names(self):
        validator = RequiredFieldValidator(["partner"])

        with pytest.raises(ValidationError) as exc_info:
            validator.validate(make_audit_record(partner=None))
        assert exc_info.value.missing_fields == ["partner"]

    def test_rule_type(self):
        assert RequiredFieldValidator().rule_type == "required_field"

    def test_repr(self):
        assert repr(RequiredFieldValidator(["a", "b"])) == "RequiredFieldValidator(fields=['a', 'b'])"

    def test_base_validator_is_abstract(self):
        with pytest.raises(TypeError):
            BaseValidator(["a"])

    @given(
        st.dictionaries(
            keys=st.sampled_from(MANDATORY_FIELDS),
            values=st.one_of(st.none(), st.text(), st.integers(), st.booleans()),
        )
    )
    def test_violations_match_falsy_fields(self, record):
        """Property: a field is reported exactly when it is absent or falsy"""
        validator = RequiredFieldValidator()
        expected = [name for name in MANDATORY_FIELDS if not record.get(name)]

        assert validator.find_violations(record) == expected

    @given(st.text(min_size=1), st.text(min_size=1), st.text(min_size=1))
    def test_non_empty_strings_always_pass(self, message_type, project_code, component):
        """Property: any non-empty strings satisfy the rule"""
        validator = RequiredFieldValidator()
        record = {"messageType": message_type, "projectCode": project_code, "component": component}

        validator.validate(record)  # Should not raise

"""Tests for src/validation.py: tool parameter validators."""

import pytest

from model import FormType
from validation import (
    validate_form_type,
    validate_guid,
    validate_logical_name,
    validate_output_format,
    validate_required_text,
)


# ---------------------------------------------------------------------------
# validate_guid
# ---------------------------------------------------------------------------

class TestValidateGuid:
    def test_valid_lowercase(self):
        guid = "a1b2c3d4-e5f6-7890-abcd-ef1234567890"
        assert validate_guid(guid) == guid

    def test_uppercase_is_normalized(self):
        assert validate_guid("A1B2C3D4-E5F6-7890-ABCD-EF1234567890") == "a1b2c3d4-e5f6-7890-abcd-ef1234567890"

    def test_braces_are_stripped(self):
        assert validate_guid("{a1b2c3d4-e5f6-7890-abcd-ef1234567890}") == "a1b2c3d4-e5f6-7890-abcd-ef1234567890"

    def test_surrounding_whitespace(self):
        assert validate_guid("  a1b2c3d4-e5f6-7890-abcd-ef1234567890 ") == "a1b2c3d4-e5f6-7890-abcd-ef1234567890"

    def test_rejects_empty(self):
        with pytest.raises(ValueError, match="Invalid GUID format"):
            validate_guid("")

    def test_rejects_too_short(self):
        with pytest.raises(ValueError, match="Invalid GUID format"):
            validate_guid("a1b2c3d4-e5f6-7890-abcd")

    def test_rejects_unbalanced_brace(self):
        with pytest.raises(ValueError, match="Invalid GUID format"):
            validate_guid("{a1b2c3d4-e5f6-7890-abcd-ef1234567890")

    def test_rejects_no_hyphens(self):
        with pytest.raises(ValueError, match="Invalid GUID format"):
            validate_guid("a1b2c3d4e5f67890abcdef1234567890")

    def test_rejects_injection(self):
        with pytest.raises(ValueError):
            validate_guid("a1b2c3d4-e5f6-7890-abcd-ef1234567890') or (1 eq 1")


# ---------------------------------------------------------------------------
# validate_logical_name
# ---------------------------------------------------------------------------

class TestValidateLogicalName:
    def test_valid(self):
        assert validate_logical_name("account") == "account"

    def test_custom_table_with_prefix(self):
        assert validate_logical_name("new_Project") == "new_project"

    def test_rejects_empty(self):
        with pytest.raises(ValueError, match="must not be empty"):
            validate_logical_name("  ")

    def test_rejects_leading_digit(self):
        with pytest.raises(ValueError, match="Invalid table name"):
            validate_logical_name("1account")

    def test_rejects_odata_characters(self):
        with pytest.raises(ValueError):
            validate_logical_name("account'/x")

    def test_rejects_too_long(self):
        with pytest.raises(ValueError, match="too long"):
            validate_logical_name("a" * 257)

    def test_custom_label(self):
        with pytest.raises(ValueError, match="Column name must not be empty"):
            validate_logical_name("", what="Column name")


# ---------------------------------------------------------------------------
# validate_form_type
# ---------------------------------------------------------------------------

class TestValidateFormType:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Main", FormType.MAIN),
            ("main", FormType.MAIN),
            ("QuickCreate", FormType.QUICK_CREATE),
            ("quick create", FormType.QUICK_CREATE),
            ("Quick_View", FormType.QUICK_VIEW),
            ("2", FormType.MAIN),
            ("100", FormType.OTHER),
        ],
    )
    def test_accepted_values(self, value, expected):
        assert validate_form_type(value) is expected

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_means_any(self, value):
        assert validate_form_type(value) is None

    @pytest.mark.parametrize("value", ["Mian", "42", "-1"])
    def test_rejects_unknown(self, value):
        with pytest.raises(ValueError, match="Unknown form type"):
            validate_form_type(value)


# ---------------------------------------------------------------------------
# Other validators
# ---------------------------------------------------------------------------

class TestValidateOutputFormat:
    def test_accepts_and_normalizes(self):
        assert validate_output_format(" JSON ") == "json"

    def test_custom_allowed(self):
        assert validate_output_format("xml", ("xml", "json")) == "xml"

    def test_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unsupported output format"):
            validate_output_format("csv")


class TestValidateRequiredText:
    def test_strips(self):
        assert validate_required_text("  Active Accounts ", "View name") == "Active Accounts"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_rejects_blank(self, value):
        with pytest.raises(ValueError, match="View name must not be empty"):
            validate_required_text(value, "View name")

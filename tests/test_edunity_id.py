import pytest

from edunity_intake.core.edunity_id import (
    contact_key,
    format_id,
    normalize_email,
    normalize_id,
    normalize_phone,
    parse_serial,
)
from edunity_intake.core.exceptions import UnknownLeadTypeError
from edunity_intake.core.lead_types import PARENT, TEACHER, get_lead_type


class TestFormatAndParse:
    def test_format_pads_to_five_digits(self):
        assert format_id(TEACHER, 101) == "EDU-ON-T-00101"
        assert format_id(PARENT, 101) == "ED-PR-00101"

    def test_format_does_not_truncate_large_serials(self):
        assert format_id(TEACHER, 123456) == "EDU-ON-T-123456"

    @pytest.mark.parametrize("serial", [101, 102, 999, 1000, 99999])
    def test_parse_inverts_format(self, serial: int):
        assert parse_serial(TEACHER, format_id(TEACHER, serial)) == serial
        assert parse_serial(PARENT, format_id(PARENT, serial)) == serial

    def test_parse_accepts_legacy_teacher_prefix(self):
        assert parse_serial(TEACHER, "ED-ON-T-00105") == 105

    def test_parse_is_case_insensitive_and_trims(self):
        assert parse_serial(TEACHER, "  edu-on-t-00107 ") == 107

    @pytest.mark.parametrize(
        "value",
        [None, "", "EDU-ON-T-101", "EDU-ON-T-00101x", "ED-PR-00101", 101, "XYZ-00101"],
    )
    def test_parse_rejects_non_ids(self, value):
        assert parse_serial(TEACHER, value) is None

    def test_parent_does_not_accept_teacher_prefix(self):
        assert parse_serial(PARENT, "EDU-ON-T-00101") is None


class TestNormalization:
    def test_normalize_id_rewrites_legacy_prefix(self):
        assert normalize_id(TEACHER, "ed-on-t-00105") == "EDU-ON-T-00105"

    def test_normalize_id_returns_empty_for_garbage(self):
        assert normalize_id(TEACHER, "not-an-id") == ""

    def test_email_is_trimmed_and_lowercased(self):
        assert normalize_email("  T@X.Com ") == "t@x.com"
        assert normalize_email(None) == ""

    def test_phone_keeps_digits_only(self):
        assert normalize_phone("+234 (801) 000-0001") == "2348010000001"
        assert normalize_phone("   ") == ""
        assert normalize_phone(None) == ""

    def test_contact_key(self):
        assert contact_key("email", "t@x.com") == "email:t@x.com"
        assert contact_key("phone", "0801") == "phone:0801"


class TestLeadTypes:
    def test_lookup_is_case_insensitive(self):
        assert get_lead_type(" Teacher ") is TEACHER
        assert get_lead_type("parent") is PARENT

    def test_unknown_lead_type_raises(self):
        with pytest.raises(UnknownLeadTypeError):
            get_lead_type("school")

    def test_only_teacher_uses_id_registry(self):
        assert TEACHER.uses_id_registry is True
        assert PARENT.uses_id_registry is False

from menubot.services.phone_service import (
    format_phone,
    is_group_jid,
    mask_phone,
    normalize_phone,
    phone_variants,
)


class TestFormatPhone:
    def test_strips_jid_suffix(self):
        assert format_phone("5511987654321@s.whatsapp.net") == "5511987654321"

    def test_strips_lid_suffix(self):
        assert format_phone("5511987654321@lid") == "5511987654321"

    def test_removes_trunk_zero_after_country_code(self):
        assert format_phone("55011987654321") == "5511987654321"

    def test_adds_country_code_to_local_number(self):
        assert format_phone("11987654321") == "5511987654321"

    def test_adds_country_code_to_ten_digits(self):
        assert format_phone("1187654321") == "5511987654321"

    def test_inserts_mobile_nine(self):
        assert format_phone("551187654321") == "5511987654321"

    def test_keeps_thirteen_digit_number(self):
        assert format_phone("5521998765432") == "5521998765432"

    def test_keeps_foreign_number(self):
        assert format_phone("447911123456") == "447911123456"

    def test_empty_input_never_fails(self):
        assert format_phone("") == ""
        assert format_phone(None) == ""

    def test_ignores_formatting_characters(self):
        assert format_phone("+55 (11) 98765-4321") == "5511987654321"


class TestPhoneVariants:
    def test_thirteen_digit_variants_in_order(self):
        assert phone_variants("5511987654321") == [
            "5511987654321",
            "5511987654321@s.whatsapp.net",
            "11987654321",
            "551187654321",
        ]

    def test_twelve_digit_variants_add_nine(self):
        variants = phone_variants("551187654321")
        assert variants[0] == "551187654321"
        assert variants[-1] == "5511987654321"

    def test_variants_are_unique(self):
        variants = phone_variants("5511987654321")
        assert len(variants) == len(set(variants))

    def test_short_number_has_no_brazilian_variants(self):
        assert phone_variants("447911123456") == ["447911123456", "447911123456@s.whatsapp.net"]

    def test_normalize_phone_bundles_both(self):
        normalized = normalize_phone("11987654321@s.whatsapp.net")
        assert normalized.canonical == "5511987654321"
        assert normalized.variants[0] == normalized.canonical


class TestHelpers:
    def test_group_jid(self):
        assert is_group_jid("120363025246125486@g.us") is True
        assert is_group_jid("5511987654321@s.whatsapp.net") is False

    def test_mask_phone(self):
        assert mask_phone("5511987654321") == "551198***"
        assert mask_phone("") == "***"

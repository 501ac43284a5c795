import pytest

from momo_gateway.utils.money import format_amount
from momo_gateway.utils.phone import detect_country, format_phone_number
from momo_gateway.utils.security import hmac_sha256_hex, verify_hmac_sha256_hex


class TestFormatPhoneNumber:
    """Normalisation to the calling-code form"""

    @pytest.mark.parametrize("raw, expected", [
        ("07 00 00 00 00", "+225700000000"),
        ("07-00-00-00", "+2257000000"),
        ("+225 07 00 00 00 00", "+2250700000000"),
        ("0022177 123 45 67", "+221771234567"),
        ("+237 69 123 45 67", "+237691234567"),
        ("7000000", "+2257000000"),
        ("", "+225"),
        (None, "+225"),
    ])
    def test_formats(self, raw, expected):
        assert format_phone_number(raw) == expected

    @pytest.mark.parametrize("raw", ["07 00 00 00", "+221771234567", "00237691234567", "0102030405"])
    def test_idempotent(self, raw):
        once = format_phone_number(raw)
        assert format_phone_number(once) == once

    def test_other_default_code(self):
        assert format_phone_number("771234567", default_code="+221") == "+221771234567"


class TestDetectCountry:

    def test_known_codes(self):
        assert detect_country("+221771234567") == "SN"
        assert detect_country("+237691234567") == "CM"
        assert detect_country("0700000000") == "CI"

    def test_unknown_code_falls_back_to_ci(self):
        assert detect_country("+33612345678") == "CI"

    def test_restricted_to_known_countries(self):
        assert detect_country("+233201234567", known=("CI", "SN")) == "CI"
        assert detect_country("+233201234567") == "GH"


NNBSP = "\u202f"
NBSP = "\u00a0"


class TestFormatAmount:
    """fr-FR display, no decimals"""

    def test_xof_grouping(self):
        assert format_amount(10000) == f"10{NNBSP}000{NBSP}F{NNBSP}CFA"

    def test_small_amount(self):
        assert format_amount(500, "XOF") == f"500{NBSP}F{NNBSP}CFA"

    def test_rounds_half_up(self):
        assert format_amount(2.5) == f"3{NBSP}F{NNBSP}CFA"
        assert format_amount(1499.4) == f"1{NNBSP}499{NBSP}F{NNBSP}CFA"

    def test_other_currencies(self):
        assert format_amount(1500, "XAF") == f"1{NNBSP}500{NBSP}FCFA"
        assert format_amount(1234567, "eur") == f"1{NNBSP}234{NNBSP}567{NBSP}€"
        assert format_amount(100, "ABC") == f"100{NBSP}ABC"


class TestWebhookSignature:

    def test_valid_signature(self):
        body = b'{"status":"SUCCESS"}'
        sig = hmac_sha256_hex("secret", body)
        assert verify_hmac_sha256_hex("secret", body, sig)
        assert verify_hmac_sha256_hex("secret", body, f"sha256={sig}")
        assert verify_hmac_sha256_hex("secret", body, sig.upper())

    def test_invalid_signature(self):
        body = b'{"status":"SUCCESS"}'
        assert not verify_hmac_sha256_hex("secret", body, None)
        assert not verify_hmac_sha256_hex("secret", body, "")
        assert not verify_hmac_sha256_hex("other", body, hmac_sha256_hex("secret", body))
        assert not verify_hmac_sha256_hex("secret", body + b" ", hmac_sha256_hex("secret", body))

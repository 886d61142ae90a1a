"""Unit tests for the signature primitives and canonical message construction."""

from decimal import Decimal

import pytest

from cardpay.crypto import hmac256, legacy
from cardpay.crypto.signing import (
    ProtocolVariant,
    canonical_bytes,
    canonical_string,
    format_amount,
    sign,
    signatures_match,
)
from cardpay.domain.errors import InvalidKeyEncoding, UnsupportedCharacters

from cardpay.application.self_test import (
    EXAMPLE_RURL,
    HMAC_TEST_KEY as HMAC_KEY,
    LEGACY_TEST_KEY as LEGACY_KEY,
)

LEGACY_REQUEST_VALUES = [
    "9999",
    "1234.50",
    "978",
    "1111",
    EXAMPLE_RURL,
    "1.2.3.4",
    "JanPokusny",
]
HMAC_REQUEST_VALUES = [
    "9999",
    "1234.50",
    "978",
    "1111",
    EXAMPLE_RURL,
    "1.2.3.4",
    "Jan Pokusny",
    "01092014125505",
]


class TestFormatAmount:
    """Test format_amount function."""

    @pytest.mark.parametrize(
        "amount, expected",
        [
            (1234.5, "1234.50"),
            (Decimal("1234.5"), "1234.50"),
            ("10", "10.00"),
            (10, "10.00"),
            (0, "0.00"),
            (Decimal("0.005"), "0.01"),
            (0.1 + 0.2, "0.30"),
            (1234567.891, "1234567.89"),
            ("1e3", "1000.00"),
        ],
    )
    def test_format_amount(self, amount: object, expected: str) -> None:
        """Two decimals, '.' separator, no thousands separators."""
        assert format_amount(amount) == expected  # type: ignore[arg-type]

    @pytest.mark.parametrize("amount", ["abc", "", float("nan"), "Infinity", True])
    def test_format_amount_invalid_raises(self, amount: object) -> None:
        with pytest.raises(ValueError):
            format_amount(amount)  # type: ignore[arg-type]


class TestCanonicalString:
    """Test canonical message construction."""

    def test_canonical_string_has_no_delimiters(self) -> None:
        assert canonical_string(["9999", "1.00", "978"]) == "99991.00978"

    def test_canonical_string_preserves_order(self) -> None:
        assert canonical_string(["b", "a"]) != canonical_string(["a", "b"])

    def test_canonical_bytes_is_ascii(self) -> None:
        assert canonical_bytes(["Jan", " ", "Pokusny"]) == b"Jan Pokusny"

    def test_canonical_bytes_rejects_non_ascii(self) -> None:
        with pytest.raises(UnsupportedCharacters, match="position 5"):
            canonical_bytes(["9999", "Ján"])


class TestLegacyPrimitive:
    """SHA-1 truncated to one block, then AES-256-ECB."""

    def test_known_answer_request(self) -> None:
        message = "".join(LEGACY_REQUEST_VALUES).encode("ascii")
        assert (
            legacy.sign_message(message, LEGACY_KEY)
            == "4E7DF35F91A19F6F6A4A0AF5534AC919"
        )

    def test_known_answer_callback(self) -> None:
        assert (
            legacy.sign_message(b"1111OK123456", LEGACY_KEY)
            == "781C110AD840077E470E1D5C9F944D7D"
        )

    def test_digest_block_is_sha1_prefix(self) -> None:
        # SHA1("abc") = a9993e364706816aba3e25717850c26c9cd0d89d
        assert legacy.digest_block(b"abc") == bytes.fromhex(
            "a9993e364706816aba3e25717850c26c"
        )

    def test_encrypt_block_rejects_wrong_sizes(self) -> None:
        with pytest.raises(ValueError, match="block"):
            legacy.encrypt_block(bytes(15), bytes(32))
        with pytest.raises(ValueError, match="key"):
            legacy.encrypt_block(bytes(16), bytes(16))

    def test_signature_is_uppercase_32_chars(self) -> None:
        signature = legacy.sign_message(b"anything", LEGACY_KEY)
        assert len(signature) == 32
        assert signature == signature.upper()

    def test_short_key_is_zero_padded(self) -> None:
        """A 16-byte key signs like the same key padded with zero bytes to 32."""
        short = "1A2B3C4D1A2B3C4D1A2B3C4D1A2B3C4D"
        padded = short + "00" * 16
        assert legacy.sign_message(b"x", short) == legacy.sign_message(b"x", padded)


class TestHmacPrimitive:
    """HMAC-SHA256 with a 64-byte key."""

    def test_known_answer_request(self) -> None:
        message = "".join(HMAC_REQUEST_VALUES).encode("ascii")
        assert (
            hmac256.sign_message(message, HMAC_KEY)
            == "574b763f4afd4167b10143d71dc2054615c3fa76877dc08a7cc9592a741b3eb5"
        )

    def test_known_answer_callback(self) -> None:
        message = b"1234.509781111OK123456101092014125505"
        assert (
            hmac256.sign_message(message, HMAC_KEY)
            == "8df96c2603831046d0e3502cab1ddb7d9b629d7f09a44aee7abbec0be3f2d971"
        )

    def test_signature_is_lowercase_64_chars(self) -> None:
        signature = hmac256.sign_message(b"anything", HMAC_KEY)
        assert len(signature) == 64
        assert signature == signature.lower()

    def test_key_longer_than_64_bytes_is_truncated(self) -> None:
        assert hmac256.sign_message(b"x", HMAC_KEY + "FFFF") == hmac256.sign_message(
            b"x", HMAC_KEY
        )


class TestSign:
    """Test the variant dispatcher."""

    def test_sign_dispatches_legacy(self) -> None:
        assert (
            sign(ProtocolVariant.LEGACY, LEGACY_REQUEST_VALUES, LEGACY_KEY)
            == "4E7DF35F91A19F6F6A4A0AF5534AC919"
        )

    def test_sign_dispatches_hmac(self) -> None:
        assert (
            sign(ProtocolVariant.HMAC256, HMAC_REQUEST_VALUES, HMAC_KEY)
            == "574b763f4afd4167b10143d71dc2054615c3fa76877dc08a7cc9592a741b3eb5"
        )

    def test_sign_is_deterministic(self) -> None:
        for variant, values, key in (
            (ProtocolVariant.LEGACY, LEGACY_REQUEST_VALUES, LEGACY_KEY),
            (ProtocolVariant.HMAC256, HMAC_REQUEST_VALUES, HMAC_KEY),
        ):
            assert sign(variant, values, key) == sign(variant, list(values), key)

    def test_changing_any_field_changes_signature(self) -> None:
        for variant, values, key in (
            (ProtocolVariant.LEGACY, LEGACY_REQUEST_VALUES, LEGACY_KEY),
            (ProtocolVariant.HMAC256, HMAC_REQUEST_VALUES, HMAC_KEY),
        ):
            baseline = sign(variant, values, key)
            seen = {baseline}
            for i in range(len(values)):
                changed = list(values)
                changed[i] = changed[i] + "X"
                signature = sign(variant, changed, key)
                assert signature not in seen
                seen.add(signature)

    def test_sign_with_different_key_differs(self) -> None:
        other_key = "00" * 32
        assert sign(ProtocolVariant.LEGACY, LEGACY_REQUEST_VALUES, other_key) != sign(
            ProtocolVariant.LEGACY, LEGACY_REQUEST_VALUES, LEGACY_KEY
        )

    @pytest.mark.parametrize("bad_key", ["ABC", "XYZW", ""])
    def test_sign_invalid_key_raises(self, bad_key: str) -> None:
        with pytest.raises(InvalidKeyEncoding):
            sign(ProtocolVariant.HMAC256, HMAC_REQUEST_VALUES, bad_key)

    def test_sign_non_ascii_raises(self) -> None:
        values = list(LEGACY_REQUEST_VALUES)
        values[-1] = "Ján Pokusný"
        with pytest.raises(UnsupportedCharacters):
            sign(ProtocolVariant.LEGACY, values, LEGACY_KEY)


class TestSignaturesMatch:
    """Test signature comparison with case normalization."""

    def test_legacy_accepts_lowercase_supplied(self) -> None:
        expected = "4E7DF35F91A19F6F6A4A0AF5534AC919"
        assert signatures_match(ProtocolVariant.LEGACY, expected, expected.lower())

    def test_hmac_accepts_uppercase_supplied(self) -> None:
        expected = "574b763f4afd4167b10143d71dc2054615c3fa76877dc08a7cc9592a741b3eb5"
        assert signatures_match(ProtocolVariant.HMAC256, expected, expected.upper())

    def test_one_character_difference_rejected(self) -> None:
        expected = "4E7DF35F91A19F6F6A4A0AF5534AC919"
        assert not signatures_match(
            ProtocolVariant.LEGACY, expected, expected[:-1] + "8"
        )

    def test_length_difference_rejected(self) -> None:
        expected = "4E7DF35F91A19F6F6A4A0AF5534AC919"
        assert not signatures_match(ProtocolVariant.LEGACY, expected, expected[:-1])
        assert not signatures_match(ProtocolVariant.LEGACY, expected, "")

    def test_variant_properties(self) -> None:
        assert ProtocolVariant.LEGACY.signature_field == "SIGN"
        assert ProtocolVariant.HMAC256.signature_field == "HMAC"

    @pytest.mark.parametrize("padding", [" ", "\n", "\t"])
    def test_surrounding_whitespace_rejected(self, padding: str) -> None:
        """Supplied signatures must match exactly apart from hex case."""
        expected = "4E7DF35F91A19F6F6A4A0AF5534AC919"
        assert not signatures_match(ProtocolVariant.LEGACY, expected, expected + padding)
        assert not signatures_match(ProtocolVariant.LEGACY, expected, padding + expected)

    def test_normalize_signature_keeps_whitespace(self) -> None:
        assert ProtocolVariant.HMAC256.normalize_signature(" AB ") == " ab "
        assert ProtocolVariant.LEGACY.normalize_signature("ab\n") == "AB\n"

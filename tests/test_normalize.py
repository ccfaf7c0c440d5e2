"""Tests for control-sequence skipping, normalization and its inverse."""
import pytest

from krill import normalize as nz
from krill.normalize import (decode_char, is_overstrike, normalize, normalize_count, sgr_length,
                             skip_controls)


class TestSgrLength:
    def test_simple_sequence(self):
        assert sgr_length(b"\x1b[1m", 0) == 4

    def test_parameters(self):
        assert sgr_length(b"x\x1b[1;31mx", 1) == 7

    def test_empty_parameters(self):
        assert sgr_length(b"\x1b[m", 0) == 3

    def test_unterminated(self):
        assert sgr_length(b"\x1b[1", 0) == 0

    def test_other_escape_sequence(self):
        assert sgr_length(b"\x1b[?25h", 0) == 0

    def test_not_escape(self):
        assert sgr_length(b"abc", 0) == 0


class TestDecodeChar:
    def test_ascii(self):
        assert decode_char(b"a", 0) == ("a", 1)

    def test_multibyte(self):
        data = "é".encode("utf-8")
        assert decode_char(data, 0) == ("é", 2)

    def test_invalid_byte_falls_back(self):
        assert decode_char(b"\xff", 0) == ("�", 1)

    def test_truncated_sequence_falls_back(self):
        data = "日".encode("utf-8")[:2]
        assert decode_char(data, 0) == ("�", 1)


class TestSkipControls:
    def test_skips_sgr(self):
        assert skip_controls(b"\x1b[1mA", 0) == 4

    def test_skips_overstrike_prefix(self):
        assert skip_controls(b"a\bX", 0) == 2

    def test_skips_chains(self):
        assert skip_controls(b"\x1b[4m_\bx", 0) == 6

    def test_stops_at_payload(self):
        assert skip_controls(b"abc", 1) == 1

    def test_multibyte_overstrike(self):
        data = "é\bé".encode("utf-8")
        assert skip_controls(data, 0) == 3

    def test_is_overstrike(self):
        assert is_overstrike(b"a\bX", 0)
        assert is_overstrike(b"ab\b", 1)
        assert not is_overstrike(b"ab\b", 0)
        assert not is_overstrike(b"a\b", 1)


class TestNormalize:
    def test_overstrike_keeps_second_character(self):
        assert normalize(b"a\bXb\bY\n") == b"XY\n"

    def test_sgr_stripped(self):
        assert normalize(b"\x1b[1mBOLD\x1b[0m\n") == b"BOLD\n"

    def test_underline_overstrike(self):
        assert normalize(b"_\bu_\bs_\be") == b"use"

    def test_invalid_escape_kept(self):
        assert normalize(b"\x1b[?25hx") == b"\x1b[?25hx"

    def test_multibyte_bold(self):
        assert normalize("é\bé!".encode("utf-8")) == "é!".encode("utf-8")

    def test_length_limits_input(self):
        assert normalize(b"ab\x1b[1mcd", 2) == b"ab"

    def test_plain_text_unchanged(self):
        assert normalize(b"plain text\n") == b"plain text\n"


class TestNormalizeCount:
    def test_overstrike_first_character(self):
        assert normalize_count(b"a\bXb\bY\n", 1) == 3

    def test_zero(self):
        assert normalize_count(b"abc", 0) == 0

    def test_across_sgr(self):
        assert normalize_count(b"a\x1b[1mbc", 2) == 6

    def test_whole_line(self):
        raw = b"\x1b[1mBOLD\x1b[0m\n"
        assert normalize_count(raw, len(normalize(raw))) == len(raw)

    @pytest.mark.parametrize("raw", [
        b"a\bXb\bY\n",
        b"\x1b[1mBOLD\x1b[0m tail\n",
        "_\bü_\bb\x1b[31mer\x1b[0m".encode("utf-8"),
    ])
    def test_prefix_normalizes_to_count(self, raw):
        total = len(normalize(raw))
        for k in range(total + 1):
            consumed = normalize_count(raw, k)
            assert len(normalize(raw, consumed)) == k

    def test_can_stop_inside_character(self):
        raw = "日本".encode("utf-8")
        assert normalize_count(raw, 1) == 1


class TestSetEncoding:
    def test_unknown_encoding_falls_back(self):
        saved = nz.ENCODING
        try:
            nz.set_encoding("no-such-encoding")
            assert nz.ENCODING == "utf-8"
        finally:
            nz.ENCODING = saved

"""Tests for the probe output protocol."""

import pytest

from ffsys.errors import ProbeProtocolError
from ffsys.probe.protocol import is_set, read_digits, read_flag, read_symbol, tag, validate_tags

OUTPUT = """\
[FF_API_OLD_AVOPTIONS]11
[FF_API_PIX_FMT]01
[FF_API_CONTEXT_SIZE]00
[avcodec_version_greater_than_58_9]1
[avcodec_version_greater_than_62_107]0
"""


def test_tag():
    assert tag("FF_API_PIX_FMT") == "[FF_API_PIX_FMT]"


class TestValidateTags:
    def test_valid(self):
        assert validate_tags(["A", "_b1", "FF_API_X"]) == ["A", "_b1", "FF_API_X"]

    def test_duplicate(self):
        with pytest.raises(ProbeProtocolError, match=r"\[A\] is emitted more than once"):
            validate_tags(["A", "B", "A"])

    @pytest.mark.parametrize("name", ["", "1ABC", "A]B", "A B", "A-B"])
    def test_not_an_identifier(self, name):
        with pytest.raises(ProbeProtocolError, match="not a C identifier"):
            validate_tags([name])


class TestReading:
    def test_symbol_values(self):
        assert read_symbol(OUTPUT, "FF_API_OLD_AVOPTIONS") == (True, True)
        assert read_symbol(OUTPUT, "FF_API_PIX_FMT") == (False, True)
        assert read_symbol(OUTPUT, "FF_API_CONTEXT_SIZE") == (False, False)

    def test_flags(self):
        assert read_flag(OUTPUT, "avcodec_version_greater_than_58_9") is True
        assert read_flag(OUTPUT, "avcodec_version_greater_than_62_107") is False

    def test_bracketed_tags_do_not_match_prefixes(self):
        output = "[FF_API_PIX_FMT_DESC]11\n[FF_API_PIX_FMT]00\n"
        assert read_symbol(output, "FF_API_PIX_FMT") == (False, False)

    def test_missing_tag(self):
        with pytest.raises(ProbeProtocolError, match=r"Variable '\[FF_API_VDPAU\]' not found"):
            read_symbol(OUTPUT, "FF_API_VDPAU")

    def test_truncated_output(self):
        with pytest.raises(ProbeProtocolError, match="Expected 2 digit"):
            read_digits("[FF_API_VDPAU]1", "FF_API_VDPAU", 2)

    def test_non_digit(self):
        with pytest.raises(ProbeProtocolError):
            read_digits("[FF_API_VDPAU]x1\n", "FF_API_VDPAU", 2)

    def test_any_nonzero_digit_is_true(self):
        assert is_set("1")
        assert is_set("7")
        assert not is_set("0")

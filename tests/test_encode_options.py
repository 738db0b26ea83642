import pytest

from phono.encode_options import BitRateMode, ChannelMode, enum_values, parse_case_insensitive_enum


def test_enum_values_preserve_declaration_order():
    assert enum_values(BitRateMode) == ("VBR", "CBR", "ABR")


def test_parse_case_insensitive_enum():
    assert parse_case_insensitive_enum(" cbr ", BitRateMode) is BitRateMode.CBR


def test_parse_case_insensitive_enum_lists_allowed_values():
    with pytest.raises(ValueError, match="Allowed values: VBR, CBR, ABR"):
        parse_case_insensitive_enum("fast", BitRateMode)


def test_channel_modes_are_numbered_for_the_wire():
    assert [int(mode) for mode in ChannelMode] == [0, 1, 2]

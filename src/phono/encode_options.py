"""Shared encoder option enums and parsing helpers."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import TypeVar


class BitRateMode(str, Enum):
    """MP3 bit-rate strategies."""

    VBR = "VBR"
    CBR = "CBR"
    ABR = "ABR"


class ChannelMode(IntEnum):
    """MP3 channel modes, numbered as accepted on the wire."""

    MONO = 0
    STEREO = 1
    JOINT_STEREO = 2


EnumT = TypeVar("EnumT", bound=Enum)


def enum_values(enum_cls: type[EnumT]) -> tuple[str, ...]:
    """Return enum values for UI/API hinting in declaration order."""

    return tuple(str(member.value) for member in enum_cls)


def parse_case_insensitive_enum(raw_value: str, enum_cls: type[EnumT]) -> EnumT:
    """Parse enum values case-insensitively and raise ValueError with allowed values."""

    normalized = raw_value.strip().lower()
    for member in enum_cls:
        if str(member.value).lower() == normalized:
            return member

    allowed = ", ".join(enum_values(enum_cls))
    enum_name = enum_cls.__name__
    raise ValueError(f"Invalid {enum_name}: '{raw_value}'. Allowed values: {allowed}.")

"""Registry of supported audio formats and their encoder parameter domains.

Invariants
----------
* Format names are unique and extension sets are disjoint (case-insensitive)
  within a registry.
* Formats, domains and registries are immutable once built, so they are
  shared between concurrent conversion jobs without locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from types import MappingProxyType
from typing import Any, Iterable

from phono.encode_options import BitRateMode, ChannelMode
from phono.errors import UnsupportedFormatError

MIN_BIT_RATE = 8
MAX_BIT_RATE = 320
VBR_QUALITY_RANGE = (0, 9)
MP3_QUALITY_RANGE = (0, 9)


class FormatFamily(str, Enum):
    """Closed set of codec families a format can belong to."""

    WAV = "wav"
    MP3 = "mp3"
    FLAC = "flac"


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """Accepted values for a single encoder parameter."""

    name: str
    choices: frozenset[Any] | None = None
    bounds: tuple[int, int] | None = None
    required: bool = True
    default: Any = None

    def contains(self, value: Any) -> bool:
        if self.choices is not None:
            return value in self.choices
        if self.bounds is not None:
            low, high = self.bounds
            return isinstance(value, int) and low <= value <= high
        return True

    def allowed(self) -> str:
        if self.choices is not None:
            return ", ".join(str(choice) for choice in sorted(self.choices))
        if self.bounds is not None:
            return f"[{self.bounds[0]}..{self.bounds[1]}]"
        return "any"

    def describe(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "required": self.required}
        if self.choices is not None:
            payload["choices"] = sorted(self.choices)
        if self.bounds is not None:
            payload["min"], payload["max"] = self.bounds
        if self.default is not None:
            payload["default"] = self.default
        return payload


@dataclass(frozen=True, slots=True)
class ParameterDomain:
    """Ordered collection of parameter specs owned by a format."""

    parameters: tuple[ParameterSpec, ...] = ()

    def __getitem__(self, name: str) -> ParameterSpec:
        for spec in self.parameters:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(spec.name == name for spec in self.parameters)

    def describe(self) -> list[dict[str, Any]]:
        return [spec.describe() for spec in self.parameters]


@dataclass(frozen=True, slots=True)
class Format:
    """A registered audio format."""

    name: str
    family: FormatFamily
    extensions: frozenset[str]
    default_extension: str
    media_type: str
    domain: ParameterDomain = ParameterDomain()

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "extensions": sorted(self.extensions),
            "default_extension": self.default_extension,
            "media_type": self.media_type,
            "parameters": self.domain.describe(),
        }


WAV = Format(
    name="wav",
    family=FormatFamily.WAV,
    extensions=frozenset({".wav", ".wave"}),
    default_extension=".wav",
    media_type="audio/wav",
    domain=ParameterDomain(
        (ParameterSpec("bitDepth", choices=frozenset({8, 16, 24, 32})),)
    ),
)

MP3 = Format(
    name="mp3",
    family=FormatFamily.MP3,
    extensions=frozenset({".mp3"}),
    default_extension=".mp3",
    media_type="audio/mpeg",
    domain=ParameterDomain(
        (
            ParameterSpec(
                "bitRateMode", choices=frozenset(mode.value for mode in BitRateMode)
            ),
            ParameterSpec("vbrQuality", bounds=VBR_QUALITY_RANGE),
            ParameterSpec("bitRate", bounds=(MIN_BIT_RATE, MAX_BIT_RATE)),
            ParameterSpec(
                "channelMode", choices=frozenset(int(mode) for mode in ChannelMode)
            ),
            ParameterSpec(
                "useQuality",
                choices=frozenset({True, False}),
                required=False,
                default=False,
            ),
            ParameterSpec("quality", bounds=MP3_QUALITY_RANGE, required=False),
        )
    ),
)

FLAC = Format(
    name="flac",
    family=FormatFamily.FLAC,
    extensions=frozenset({".flac"}),
    default_extension=".flac",
    media_type="audio/flac",
    domain=ParameterDomain(
        (
            ParameterSpec(
                "bitDepth",
                choices=frozenset({8, 16, 24}),
                required=False,
                default=16,
            ),
        )
    ),
)


class FormatRegistry:
    """Lookup table resolving formats by extension (input) or name (output)."""

    def __init__(self, formats: Iterable[Format]) -> None:
        ordered = tuple(formats)
        by_name: dict[str, Format] = {}
        by_extension: dict[str, Format] = {}
        for fmt in ordered:
            name_key = fmt.name.lower()
            if name_key in by_name:
                raise ValueError(f"Format name registered twice: {fmt.name!r}.")
            by_name[name_key] = fmt
            for extension in fmt.extensions:
                extension_key = extension.lower()
                if extension_key in by_extension:
                    owner = by_extension[extension_key].name
                    raise ValueError(
                        f"Extension {extension!r} of {fmt.name!r} is already registered for {owner!r}."
                    )
                by_extension[extension_key] = fmt

        self._formats = ordered
        self._by_name = MappingProxyType(by_name)
        self._by_extension = MappingProxyType(by_extension)

    def formats(self) -> tuple[Format, ...]:
        return self._formats

    def input_extensions(self) -> tuple[str, ...]:
        return tuple(ext for fmt in self._formats for ext in sorted(fmt.extensions))

    def resolve_input_format(self, name_or_path: str) -> Format:
        """Resolve a format from a file name, path or bare extension."""

        candidate = name_or_path.strip()
        suffix = PurePath(candidate).suffix if candidate else ""
        extension = suffix.lower() if suffix else "." + candidate.lower().lstrip(".")
        try:
            return self._by_extension[extension]
        except KeyError:
            raise UnsupportedFormatError(name_or_path, self.input_extensions()) from None

    def resolve_output_format(self, name: str) -> Format:
        """Resolve a format by its canonical name; a leading dot is tolerated."""

        key = name.strip().lower().lstrip(".")
        try:
            return self._by_name[key]
        except KeyError:
            supported = tuple(fmt.name for fmt in self._formats)
            raise UnsupportedFormatError(name, supported) from None

    def describe(self) -> list[dict[str, Any]]:
        return [fmt.describe() for fmt in self._formats]


def build_default_registry() -> FormatRegistry:
    """Build the registry of every format the service supports."""

    return FormatRegistry((WAV, MP3, FLAC))


def out_file_name(prefix: str, index: int, extension: str) -> str:
    """Name the ``index``-th result of a conversion, e.g. ``result_1.mp3``."""

    return f"{prefix}_{index}{extension}"

"""Domain models for conversion jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Mapping, Union

from phono.encode_options import BitRateMode, ChannelMode
from phono.errors import (
    MissingParameterError,
    ParameterValidationError,
    PipelineError,
    ResourceError,
    UnsupportedValueError,
)
from phono.formats import Format


def ensure_in_domain(output_format: Format, name: str, value: Any) -> None:
    """Raise UnsupportedValueError when value is outside the named parameter domain."""

    spec = output_format.domain[name]
    if not spec.contains(value):
        raise UnsupportedValueError(name, value, spec.allowed())


@dataclass(frozen=True, slots=True)
class WavEncoderConfig:
    """Validated settings for the uncompressed WAV encoder."""

    output_format: Format
    bit_depth: int

    def __post_init__(self) -> None:
        ensure_in_domain(self.output_format, "bitDepth", self.bit_depth)

    def to_params(self) -> dict[str, str]:
        return {"bitDepth": str(self.bit_depth)}


@dataclass(frozen=True, slots=True)
class Mp3EncoderConfig:
    """Validated settings for the MP3 encoder.

    ``bit_rate`` holds the VBR quality when ``bit_rate_mode`` is VBR and the
    bit rate in kbps otherwise.
    """

    output_format: Format
    bit_rate_mode: BitRateMode
    bit_rate: int
    channel_mode: ChannelMode
    use_quality: bool = False
    quality: int | None = None

    def __post_init__(self) -> None:
        ensure_in_domain(self.output_format, "bitRateMode", self.bit_rate_mode.value)
        ensure_in_domain(self.output_format, self.rate_parameter, self.bit_rate)
        ensure_in_domain(self.output_format, "channelMode", int(self.channel_mode))
        if self.use_quality:
            if self.quality is None:
                raise MissingParameterError("quality")
            ensure_in_domain(self.output_format, "quality", self.quality)
        elif self.quality is not None:
            raise UnsupportedValueError("quality", self.quality, "only with useQuality")

    @property
    def rate_parameter(self) -> str:
        return "vbrQuality" if self.bit_rate_mode is BitRateMode.VBR else "bitRate"

    def to_params(self) -> dict[str, str]:
        params = {
            "bitRateMode": self.bit_rate_mode.value,
            self.rate_parameter: str(self.bit_rate),
            "channelMode": str(int(self.channel_mode)),
        }
        if self.use_quality:
            params["useQuality"] = "true"
            params["quality"] = str(self.quality)
        return params


@dataclass(frozen=True, slots=True)
class FlacEncoderConfig:
    """Validated settings for the FLAC encoder."""

    output_format: Format
    bit_depth: int

    def __post_init__(self) -> None:
        ensure_in_domain(self.output_format, "bitDepth", self.bit_depth)

    def to_params(self) -> dict[str, str]:
        return {"bitDepth": str(self.bit_depth)}


EncoderConfig = Union[WavEncoderConfig, Mp3EncoderConfig, FlacEncoderConfig]


class JobState(str, Enum):
    """Lifecycle states of a conversion job."""

    RECEIVED = "received"
    FORMAT_RESOLVED = "format_resolved"
    VALIDATED = "validated"
    RESOURCE_ACQUIRED = "resource_acquired"
    RUNNING = "running"
    FINALIZING = "finalizing"
    DELIVERED = "delivered"
    ABORTED = "aborted"


@dataclass(slots=True)
class ConversionRequest:
    """Input parameters for a conversion job. The input stream is borrowed."""

    input_stream: BinaryIO
    declared_filename: str
    output_format_name: str
    raw_params: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Success:
    """Encoded output is ready; ``stream`` is positioned at offset 0."""

    byte_count: int
    output_format: Format
    stream: BinaryIO = field(repr=False, compare=False)

    @property
    def media_type(self) -> str:
        return self.output_format.media_type


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    error: ParameterValidationError

    @property
    def reason(self) -> str:
        return self.error.message


@dataclass(frozen=True, slots=True)
class PipelineFailure:
    error: PipelineError

    @property
    def reason(self) -> str:
        return self.error.message


@dataclass(frozen=True, slots=True)
class ResourceFailure:
    error: ResourceError

    @property
    def reason(self) -> str:
        return self.error.message


Outcome = Union[Success, ValidationFailure, PipelineFailure, ResourceFailure]

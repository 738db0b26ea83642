"""Encoder parameter validation.

Parameters arrive as untyped strings (HTML form fields or CLI flags) and are
parsed against the parameter domain of the requested output format. The
checks are pure and never touch I/O, which is what allows a malformed request
to be rejected before any output resource is allocated.

For MP3 the bit-rate mode is resolved first because the domain of the rate
value depends on it: ``vbrQuality`` in [0, 9] for VBR, ``bitRate`` in
[8, 320] kbps for CBR and ABR.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

from phono.domain.models import (
    EncoderConfig,
    FlacEncoderConfig,
    Mp3EncoderConfig,
    WavEncoderConfig,
    ensure_in_domain,
)
from phono.encode_options import BitRateMode, ChannelMode, parse_case_insensitive_enum
from phono.errors import (
    MalformedParameterError,
    MissingParameterError,
    UnsupportedValueError,
)
from phono.formats import Format, FormatFamily

_INT_PATTERN = re.compile(r"[+-]?\d+")
_TRUE_VALUES = frozenset({"1", "t", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "f", "false", "no", "off"})


def _raw_value(params: Mapping[str, Any], name: str) -> str | None:
    value = params.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_int(params: Mapping[str, Any], name: str, *, required: bool = True) -> int | None:
    """Parse a strict decimal integer; empty values count as absent."""

    raw = _raw_value(params, name)
    if raw is None:
        if required:
            raise MissingParameterError(name)
        return None
    if not _INT_PATTERN.fullmatch(raw):
        raise MalformedParameterError(name, raw)
    return int(raw)


def parse_bool(params: Mapping[str, Any], name: str) -> bool | None:
    """Parse a boolean flag. Returns None when the value is not provided."""

    raw = _raw_value(params, name)
    if raw is None:
        return None
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise MalformedParameterError(name, raw)


def _checked(output_format: Format, name: str, value: Any) -> Any:
    ensure_in_domain(output_format, name, value)
    return value


def validate_wav(output_format: Format, params: Mapping[str, Any]) -> WavEncoderConfig:
    bit_depth = _checked(output_format, "bitDepth", parse_int(params, "bitDepth"))
    return WavEncoderConfig(output_format=output_format, bit_depth=bit_depth)


def validate_flac(output_format: Format, params: Mapping[str, Any]) -> FlacEncoderConfig:
    spec = output_format.domain["bitDepth"]
    bit_depth = parse_int(params, "bitDepth", required=spec.required)
    if bit_depth is None:
        bit_depth = spec.default
    return FlacEncoderConfig(
        output_format=output_format,
        bit_depth=_checked(output_format, "bitDepth", bit_depth),
    )


def validate_mp3(output_format: Format, params: Mapping[str, Any]) -> Mp3EncoderConfig:
    raw_mode = _raw_value(params, "bitRateMode")
    if raw_mode is None:
        raise MissingParameterError("bitRateMode")
    try:
        bit_rate_mode = parse_case_insensitive_enum(raw_mode, BitRateMode)
    except ValueError:
        allowed = output_format.domain["bitRateMode"].allowed()
        raise UnsupportedValueError("bitRateMode", raw_mode, allowed) from None
    _checked(output_format, "bitRateMode", bit_rate_mode.value)

    rate_parameter = "vbrQuality" if bit_rate_mode is BitRateMode.VBR else "bitRate"
    bit_rate = _checked(output_format, rate_parameter, parse_int(params, rate_parameter))

    channel_mode = _checked(output_format, "channelMode", parse_int(params, "channelMode"))

    use_quality = bool(parse_bool(params, "useQuality"))
    quality = None
    if use_quality:
        quality = _checked(output_format, "quality", parse_int(params, "quality"))

    return Mp3EncoderConfig(
        output_format=output_format,
        bit_rate_mode=bit_rate_mode,
        bit_rate=bit_rate,
        channel_mode=ChannelMode(channel_mode),
        use_quality=use_quality,
        quality=quality,
    )


_VALIDATORS: dict[FormatFamily, Callable[[Format, Mapping[str, Any]], EncoderConfig]] = {
    FormatFamily.WAV: validate_wav,
    FormatFamily.MP3: validate_mp3,
    FormatFamily.FLAC: validate_flac,
}


def validate_parameters(output_format: Format, params: Mapping[str, Any]) -> EncoderConfig:
    """Validate raw parameters against the output format and build its encoder config."""

    return _VALIDATORS[output_format.family](output_format, params)

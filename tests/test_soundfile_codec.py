from __future__ import annotations

import io

import numpy as np
import pytest
import soundfile as sf

from conftest import sine_samples, wav_bytes
from phono.domain.models import FlacEncoderConfig, Mp3EncoderConfig, WavEncoderConfig
from phono.encode_options import BitRateMode, ChannelMode
from phono.errors import DecodeError, EncodeError
from phono.formats import FLAC, MP3, WAV
from phono.infrastructure.soundfile_codec import (
    SoundFileEncoder,
    build_decoder,
    build_flac_encoder,
    build_mp3_encoder,
    build_wav_encoder,
    mp3_compression_level,
)
from phono.pipeline import PipelineRunner


def _convert(source: bytes, encoder_factory, buffer_size: int = 256) -> tuple[bytes, int]:
    output = io.BytesIO()
    result = PipelineRunner(buffer_size).run(build_decoder(io.BytesIO(source)), encoder_factory(output))
    assert result.ok, result.error
    return output.getvalue(), result.frames_transferred


def test_wav_16_bit_round_trip_is_exact() -> None:
    expected = sine_samples(duration_seconds=0.05, sample_rate=22_050, channels=2)
    source = wav_bytes(duration_seconds=0.05, sample_rate=22_050, channels=2)
    config = WavEncoderConfig(output_format=WAV, bit_depth=16)

    encoded, frames = _convert(source, lambda out: build_wav_encoder(config, out))

    decoded, sample_rate = sf.read(io.BytesIO(encoded), dtype="int16", always_2d=True)
    assert frames == len(expected)
    assert sample_rate == 22_050
    np.testing.assert_array_equal(decoded, expected)


def test_flac_round_trip_preserves_samples() -> None:
    expected = sine_samples(duration_seconds=0.05, sample_rate=16_000, channels=1)
    source = wav_bytes(duration_seconds=0.05, sample_rate=16_000, channels=1)
    config = FlacEncoderConfig(output_format=FLAC, bit_depth=16)

    encoded, _ = _convert(source, lambda out: build_flac_encoder(config, out))

    assert sf.info(io.BytesIO(encoded)).format == "FLAC"
    decoded, _ = sf.read(io.BytesIO(encoded), dtype="int16", always_2d=True)
    np.testing.assert_array_equal(decoded, expected)


@pytest.mark.parametrize(("bit_depth", "subtype"), [(8, "PCM_U8"), (24, "PCM_24"), (32, "PCM_32")])
def test_wav_encoder_writes_requested_bit_depth(bit_depth, subtype) -> None:
    config = WavEncoderConfig(output_format=WAV, bit_depth=bit_depth)

    encoded, _ = _convert(wav_bytes(), lambda out: build_wav_encoder(config, out))

    assert sf.info(io.BytesIO(encoded)).subtype == subtype


def test_mp3_encoder_downmixes_to_mono() -> None:
    config = Mp3EncoderConfig(
        output_format=MP3,
        bit_rate_mode=BitRateMode.CBR,
        bit_rate=128,
        channel_mode=ChannelMode.MONO,
    )

    encoded, frames = _convert(
        wav_bytes(duration_seconds=0.2, channels=2), lambda out: build_mp3_encoder(config, out), 1_024
    )

    info = sf.info(io.BytesIO(encoded))
    assert frames == int(0.2 * 44_100)
    assert info.format == "MP3"
    assert info.channels == 1


def test_mp3_encoder_upmixes_mono_for_joint_stereo() -> None:
    config = Mp3EncoderConfig(
        output_format=MP3,
        bit_rate_mode=BitRateMode.VBR,
        bit_rate=4,
        channel_mode=ChannelMode.JOINT_STEREO,
    )

    encoded, _ = _convert(
        wav_bytes(duration_seconds=0.2, channels=1), lambda out: build_mp3_encoder(config, out), 1_024
    )

    assert sf.info(io.BytesIO(encoded)).channels == 2


def test_match_channels_rejects_ambiguous_layouts() -> None:
    frame = np.zeros((4, 3), dtype=np.int32)

    with pytest.raises(EncodeError) as exc_info:
        SoundFileEncoder._match_channels(frame, 2)

    assert "3 input channels" in str(exc_info.value)


def test_garbage_input_fails_as_decode_error() -> None:
    config = WavEncoderConfig(output_format=WAV, bit_depth=16)
    output = io.BytesIO()

    result = PipelineRunner(64).run(
        build_decoder(io.BytesIO(b"definitely not audio" * 10)), build_wav_encoder(config, output)
    )

    assert isinstance(result.error, DecodeError)
    assert output.getvalue() == b""


@pytest.mark.parametrize(
    ("mode", "rate", "expected"),
    [
        (BitRateMode.VBR, 0, 0.0),
        (BitRateMode.VBR, 9, 0.99),
        (BitRateMode.CBR, 320, 0.0),
        (BitRateMode.ABR, 32, 0.99),
        (BitRateMode.CBR, 8, 0.99),
    ],
)
def test_mp3_compression_level(mode, rate, expected) -> None:
    assert mp3_compression_level(mode, rate) == pytest.approx(expected)


def test_mp3_quality_request_is_reported_as_ignored(caplog) -> None:
    config = Mp3EncoderConfig(
        output_format=MP3,
        bit_rate_mode=BitRateMode.VBR,
        bit_rate=4,
        channel_mode=ChannelMode.JOINT_STEREO,
        use_quality=True,
        quality=2,
    )

    with caplog.at_level("INFO", logger="phono.infrastructure.soundfile_codec"):
        build_mp3_encoder(config, io.BytesIO())

    assert "quality 2 is not supported" in caplog.text

"""Audio decode/encode adapters backed by soundfile (libsndfile).

Samples travel through the pipeline as int32 so that integer PCM survives a
decode/encode round trip unchanged at any bit depth up to 32.
"""

from __future__ import annotations

import logging
from typing import BinaryIO

import numpy as np
import soundfile as sf

from phono.domain.models import FlacEncoderConfig, Mp3EncoderConfig, WavEncoderConfig
from phono.encode_options import BitRateMode, ChannelMode
from phono.errors import EncodeError
from phono.pipeline import Frame, SignalProperties

logger = logging.getLogger(__name__)

SAMPLE_DTYPE = "int32"

WAV_SUBTYPES = {8: "PCM_U8", 16: "PCM_16", 24: "PCM_24", 32: "PCM_32"}
FLAC_SUBTYPES = {8: "PCM_S8", 16: "PCM_16", 24: "PCM_24"}

# libsndfile interpolates CBR/ABR bit rates across the MPEG-1 Layer III range.
_MPEG_MIN_KBPS = 32
_MPEG_MAX_KBPS = 320
# libsndfile rejects a compression level of exactly 1.0.
_MAX_COMPRESSION_LEVEL = 0.99
_BITRATE_MODES = {
    BitRateMode.VBR: "VARIABLE",
    BitRateMode.CBR: "CONSTANT",
    BitRateMode.ABR: "AVERAGE",
}


def mp3_compression_level(bit_rate_mode: BitRateMode, bit_rate: int) -> float:
    """Map a VBR quality or kbps bit rate onto libsndfile's [0, 1] compression level."""

    if bit_rate_mode is BitRateMode.VBR:
        level = bit_rate / 9.0
    else:
        level = (_MPEG_MAX_KBPS - bit_rate) / (_MPEG_MAX_KBPS - _MPEG_MIN_KBPS)
    return min(max(level, 0.0), _MAX_COMPRESSION_LEVEL)


class SoundFileDecoder:
    """Decoder reading any container libsndfile can detect from the stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._file: sf.SoundFile | None = None

    def open(self) -> SignalProperties:
        self._file = sf.SoundFile(self._stream, mode="r")
        return SignalProperties(sample_rate=self._file.samplerate, channels=self._file.channels)

    def next_frame(self, frame_count: int) -> Frame | None:
        if self._file is None:
            raise RuntimeError("Decoder is not open.")
        frame = self._file.read(frame_count, dtype=SAMPLE_DTYPE, always_2d=True)
        return frame if len(frame) else None

    def close(self) -> None:
        if self._file is not None and not self._file.closed:
            self._file.close()


class SoundFileEncoder:
    """Encoder writing one container/subtype to a seekable binary stream."""

    def __init__(
        self,
        stream: BinaryIO,
        *,
        container: str,
        subtype: str,
        channels: int | None = None,
        compression_level: float | None = None,
        bitrate_mode: str | None = None,
    ) -> None:
        self._stream = stream
        self.container = container
        self.subtype = subtype
        self.channels = channels
        self.compression_level = compression_level
        self.bitrate_mode = bitrate_mode
        self._file: sf.SoundFile | None = None

    def open(self, properties: SignalProperties) -> None:
        options = {}
        if self.compression_level is not None:
            options["compression_level"] = self.compression_level
        if self.bitrate_mode is not None:
            options["bitrate_mode"] = self.bitrate_mode
        self._file = sf.SoundFile(
            self._stream,
            mode="w",
            samplerate=properties.sample_rate,
            channels=self.channels or properties.channels,
            format=self.container,
            subtype=self.subtype,
            **options,
        )

    def write_frame(self, frame: Frame) -> None:
        if self._file is None:
            raise RuntimeError("Encoder is not open.")
        self._file.write(self._match_channels(frame, self._file.channels))

    def flush(self) -> None:
        if self._file is not None and not self._file.closed:
            self._file.flush()
            self._file.close()

    def close(self) -> None:
        if self._file is not None and not self._file.closed:
            self._file.close()

    @staticmethod
    def _match_channels(frame: Frame, channels: int) -> Frame:
        source = frame.shape[1]
        if source == channels:
            return frame
        if channels == 1:
            return np.round(frame.mean(axis=1, keepdims=True)).astype(np.int32)
        if source == 1:
            return np.repeat(frame, channels, axis=1)
        raise EncodeError(f"Cannot map {source} input channels onto {channels} output channels.")


def build_decoder(stream: BinaryIO) -> SoundFileDecoder:
    return SoundFileDecoder(stream)


def build_wav_encoder(config: WavEncoderConfig, stream: BinaryIO) -> SoundFileEncoder:
    return SoundFileEncoder(stream, container="WAV", subtype=WAV_SUBTYPES[config.bit_depth])


def build_flac_encoder(config: FlacEncoderConfig, stream: BinaryIO) -> SoundFileEncoder:
    return SoundFileEncoder(stream, container="FLAC", subtype=FLAC_SUBTYPES[config.bit_depth])


def build_mp3_encoder(config: Mp3EncoderConfig, stream: BinaryIO) -> SoundFileEncoder:
    if config.use_quality:
        # libsndfile exposes no knob for LAME's algorithm quality.
        logger.info("MP3 algorithm quality %s is not supported by the encoder and is ignored", config.quality)
    return SoundFileEncoder(
        stream,
        container="MP3",
        subtype="MPEG_LAYER_III",
        channels=1 if config.channel_mode is ChannelMode.MONO else 2,
        compression_level=mp3_compression_level(config.bit_rate_mode, config.bit_rate),
        bitrate_mode=_BITRATE_MODES[config.bit_rate_mode],
    )

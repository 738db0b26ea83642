"""Decoder/encoder construction for conversion jobs.

Encoders are built in two phases. ``build_encoder`` returns a
``ConfiguredEncoder`` that holds only the validated config; the codec is bound
to a destination stream by ``ConfiguredEncoder.bind`` once the job has
acquired its output resource.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, BinaryIO, Callable, Mapping

from phono.domain.models import EncoderConfig
from phono.formats import Format, FormatFamily
from phono.infrastructure import soundfile_codec
from phono.pipeline import Decoder, Encoder

DecoderBuilder = Callable[[BinaryIO], Decoder]
EncoderBuilder = Callable[[Any, BinaryIO], Encoder]

DEFAULT_DECODER_BUILDERS: Mapping[FormatFamily, DecoderBuilder] = {
    FormatFamily.WAV: soundfile_codec.build_decoder,
    FormatFamily.MP3: soundfile_codec.build_decoder,
    FormatFamily.FLAC: soundfile_codec.build_decoder,
}

DEFAULT_ENCODER_BUILDERS: Mapping[FormatFamily, EncoderBuilder] = {
    FormatFamily.WAV: soundfile_codec.build_wav_encoder,
    FormatFamily.MP3: soundfile_codec.build_mp3_encoder,
    FormatFamily.FLAC: soundfile_codec.build_flac_encoder,
}


@dataclass(frozen=True, slots=True)
class ConfiguredEncoder:
    """An encoder waiting for its output stream."""

    config: EncoderConfig
    builder: EncoderBuilder = field(repr=False, compare=False)

    def bind(self, output: BinaryIO) -> Encoder:
        return self.builder(self.config, output)

    def __call__(self, output: BinaryIO) -> Encoder:
        return self.bind(output)


class StreamFactory:
    """Build codec components for a format family."""

    def __init__(
        self,
        decoder_builders: Mapping[FormatFamily, DecoderBuilder] | None = None,
        encoder_builders: Mapping[FormatFamily, EncoderBuilder] | None = None,
    ) -> None:
        self._decoder_builders = dict(decoder_builders or DEFAULT_DECODER_BUILDERS)
        self._encoder_builders = dict(encoder_builders or DEFAULT_ENCODER_BUILDERS)

    def build_decoder(self, input_format: Format, input_stream: BinaryIO) -> Decoder:
        return self._decoder_builders[input_format.family](input_stream)

    def build_encoder(self, config: EncoderConfig) -> ConfiguredEncoder:
        return ConfiguredEncoder(
            config=config,
            builder=self._encoder_builders[config.output_format.family],
        )

"""Bounded-buffer decode -> encode pipeline.

The runner alternates between the decoder and the encoder on the calling
thread: frame N is fully written before frame N+1 is decoded, so memory use is
bounded by ``buffer_size`` frames regardless of input length.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

import numpy as np

from phono.errors import DecodeError, EncodeError, PipelineError

logger = logging.getLogger(__name__)

Frame = np.ndarray


@dataclass(frozen=True, slots=True)
class SignalProperties:
    sample_rate: int
    channels: int


class Decoder(Protocol):
    """Reads an encoded stream and produces int32 frames shaped (frames, channels)."""

    def open(self) -> SignalProperties:
        """Read stream headers and return the signal properties."""

    def next_frame(self, frame_count: int) -> Frame | None:
        """Return up to ``frame_count`` frames, or None at end of stream."""

    def close(self) -> None:
        """Release codec state. The input stream stays open."""


class Encoder(Protocol):
    """Consumes int32 frames and writes an encoded stream."""

    def open(self, properties: SignalProperties) -> None:
        """Prepare the encoder for a signal with the given properties."""

    def write_frame(self, frame: Frame) -> None:
        """Encode one frame buffer."""

    def flush(self) -> None:
        """Finalize the encoded stream."""

    def close(self) -> None:
        """Release codec state. The output stream stays open."""


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PipelineResult:
    state: PipelineState
    frames_transferred: int
    error: PipelineError | None = None

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.COMPLETED


def _decode(step: Callable[..., Any], *args: Any) -> Any:
    try:
        return step(*args)
    except PipelineError:
        raise
    except Exception as error:  # noqa: BLE001
        raise DecodeError(f"Failed to decode input: {error}") from error


def _encode(step: Callable[..., Any], *args: Any) -> Any:
    try:
        return step(*args)
    except PipelineError:
        raise
    except Exception as error:  # noqa: BLE001
        raise EncodeError(f"Failed to encode output: {error}") from error


def _close(component: Decoder | Encoder) -> None:
    try:
        component.close()
    except Exception:  # noqa: BLE001
        logger.warning("Failed to close %s", type(component).__name__, exc_info=True)


class PipelineRunner:
    """Run a decoder into an encoder once and report a single terminal result."""

    def __init__(self, buffer_size: int) -> None:
        self.buffer_size = buffer_size
        self.state = PipelineState.IDLE

    def run(self, decoder: Decoder, encoder: Encoder) -> PipelineResult:
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"Pipeline already {self.state.value}; runners are single-use.")

        self.state = PipelineState.RUNNING
        transferred = 0
        try:
            properties = _decode(decoder.open)
            _encode(encoder.open, properties)
            while True:
                frame = _decode(decoder.next_frame, self.buffer_size)
                if frame is None or len(frame) == 0:
                    break
                _encode(encoder.write_frame, frame)
                transferred += len(frame)
            _encode(encoder.flush)
        except PipelineError as error:
            self.state = PipelineState.FAILED
            logger.warning(
                "Pipeline failed",
                extra={"frames_transferred": transferred, "error_code": error.code},
            )
            return PipelineResult(PipelineState.FAILED, transferred, error)
        finally:
            _close(encoder)
            _close(decoder)

        self.state = PipelineState.COMPLETED
        return PipelineResult(PipelineState.COMPLETED, transferred)

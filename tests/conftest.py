from __future__ import annotations

import io
import wave
from pathlib import Path

import numpy as np
import pytest

from phono.application.ports import ScopedOutput
from phono.infrastructure.temp_files import TempFileOutputProvider


def sine_samples(*, duration_seconds: float, sample_rate: int, channels: int) -> np.ndarray:
    t = np.arange(int(duration_seconds * sample_rate)) / sample_rate
    mono = np.round(0.5 * 32767 * np.sin(2 * np.pi * 440.0 * t)).astype(np.int16)
    return np.repeat(mono[:, None], channels, axis=1)


def wav_bytes(
    *, duration_seconds: float = 0.1, sample_rate: int = 44_100, channels: int = 2
) -> bytes:
    samples = sine_samples(
        duration_seconds=duration_seconds, sample_rate=sample_rate, channels=channels
    )
    with io.BytesIO() as buffer:
        with wave.open(buffer, "wb") as wav:
            wav.setnchannels(channels)
            wav.setsampwidth(2)
            wav.setframerate(sample_rate)
            wav.writeframes(samples.astype("<i2").tobytes())
        return buffer.getvalue()


@pytest.fixture
def make_wav_bytes():
    return wav_bytes


class CountingOutputProvider:
    """Temp-file provider that records every acquire and release."""

    def __init__(self, directory: Path | None = None) -> None:
        self._inner = TempFileOutputProvider(directory=directory)
        self.acquired = 0
        self.released = 0
        self.names: list[str] = []

    def acquire(self, hint: str) -> ScopedOutput:
        output = self._inner.acquire(hint)
        self.acquired += 1
        self.names.append(output.name)

        def _release() -> None:
            self.released += 1
            output.release()

        return ScopedOutput(handle=output.handle, release=_release, name=output.name)


@pytest.fixture
def counting_provider(tmp_path: Path) -> CountingOutputProvider:
    return CountingOutputProvider(directory=tmp_path)

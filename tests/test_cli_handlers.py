import signal
from pathlib import Path

import pytest
import soundfile as sf

from conftest import wav_bytes
from phono.errors import ParameterValidationError, UnsupportedValueError
from phono.formats import MP3, WAV, build_default_registry
from phono.interfaces import cli_handlers


def _write_wav(path: Path, **kwargs) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(wav_bytes(**kwargs))
    return path


def test_discover_inputs_walks_directories_recursively(tmp_path: Path) -> None:
    first = _write_wav(tmp_path / "a.wav")
    nested = _write_wav(tmp_path / "deep" / "b.WAVE")
    (tmp_path / "notes.txt").write_text("skip me")
    explicit = tmp_path / "missing.wav"

    found = cli_handlers.discover_inputs([tmp_path, explicit], build_default_registry())

    assert found == sorted([first, nested]) + [explicit]


def test_output_path_avoids_overwriting_input(tmp_path: Path) -> None:
    source = tmp_path / "song.wav"

    assert cli_handlers.output_path_for(source, MP3, None) == tmp_path / "song.mp3"
    assert cli_handlers.output_path_for(source, WAV, None) == tmp_path / "song_1.wav"
    assert cli_handlers.output_path_for(source, WAV, tmp_path / "out") == tmp_path / "out" / "song.wav"


def test_prepare_encoding_rejects_bad_parameters() -> None:
    with pytest.raises(UnsupportedValueError):
        cli_handlers.prepare_encoding(build_default_registry(), "wav", {"bitDepth": "12"})


def test_run_batch_conversion_converts_every_file(tmp_path: Path) -> None:
    _write_wav(tmp_path / "in" / "one.wav")
    _write_wav(tmp_path / "in" / "sub" / "two.wav", channels=1)
    output_dir = tmp_path / "out"

    results, summary = cli_handlers.run_batch_conversion(
        [tmp_path / "in"],
        "flac",
        {"bitDepth": "24"},
        output_dir=output_dir,
        concurrency_limit=2,
    )

    assert summary == {"total": 2, "succeeded": 2, "failed": 0}
    assert [Path(item["output"]).name for item in results] == ["one.flac", "two.flac"]
    assert sf.info(str(output_dir / "two.flac")).subtype == "PCM_24"


def test_run_batch_conversion_reports_per_file_failures(tmp_path: Path) -> None:
    good = _write_wav(tmp_path / "good.wav")
    broken = tmp_path / "broken.wav"
    broken.write_bytes(b"\x00" * 64)

    results, summary = cli_handlers.run_batch_conversion(
        [good, broken, tmp_path / "absent.wav"],
        "mp3",
        {"bitRateMode": "CBR", "bitRate": "128", "channelMode": "1"},
    )

    assert summary == {"total": 3, "succeeded": 1, "failed": 2}
    assert results[0]["status"] == "succeeded"
    assert (tmp_path / "good.mp3").exists()
    assert results[1]["status"] == "failed"
    assert "decode" in results[1]["error"].lower()
    assert results[2]["status"] == "failed"
    assert not (tmp_path / "broken.mp3").exists()


def test_run_batch_conversion_validates_before_touching_files(tmp_path: Path, monkeypatch) -> None:
    touched = []
    monkeypatch.setattr(cli_handlers, "discover_inputs", lambda paths, registry: touched.append(paths))

    with pytest.raises(ParameterValidationError):
        cli_handlers.run_batch_conversion([tmp_path], "mp3", {"bitRateMode": "VBR"})

    assert touched == []


def test_run_batch_conversion_requires_inputs(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="No input files"):
        cli_handlers.run_batch_conversion([tmp_path], "wav", {"bitDepth": "16"})


def test_sigterm_interrupts_batch_and_restores_handler() -> None:
    previous = signal.getsignal(signal.SIGTERM)

    with pytest.raises(KeyboardInterrupt):
        with cli_handlers.sigterm_as_interrupt():
            signal.raise_signal(signal.SIGTERM)

    assert signal.getsignal(signal.SIGTERM) is previous


def test_run_batch_conversion_installs_sigterm_handler(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "a.wav").write_bytes(wav_bytes())
    seen = []

    def _convert_path(service, input_path, output_format, params, output_dir, correlation_id):
        seen.append(signal.getsignal(signal.SIGTERM))
        return input_path

    monkeypatch.setattr(cli_handlers, "convert_path", _convert_path)
    previous = signal.getsignal(signal.SIGTERM)

    results, summary = cli_handlers.run_batch_conversion([tmp_path], "flac", {})

    assert summary["succeeded"] == 1
    assert seen and seen[0] is not previous
    assert signal.getsignal(signal.SIGTERM) is previous

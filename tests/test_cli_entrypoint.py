from __future__ import annotations

from pathlib import Path

import runpy

import pytest
from typer.testing import CliRunner

from phono import cli

runner = CliRunner()


@pytest.fixture
def captured(monkeypatch):
    calls: dict[str, object] = {}

    def fake_run(paths, output_format_name, params, **kwargs):
        calls.update(paths=paths, output_format=output_format_name, params=params, **kwargs)
        return [], {"total": 0, "succeeded": 0, "failed": 0}

    monkeypatch.setattr(cli, "run_batch_conversion", fake_run)
    return calls


def test_encode_wav_defaults(captured) -> None:
    result = runner.invoke(cli.app, ["encode", "wav", "in.wav"])

    assert result.exit_code == 0, result.output
    assert captured["paths"] == [Path("in.wav")]
    assert captured["output_format"] == "wav"
    assert captured["params"] == {"bitDepth": "24"}
    assert captured["buffer_size"] == 1024
    assert captured["concurrency_limit"] == 4


def test_encode_mp3_defaults_to_vbr(captured) -> None:
    result = runner.invoke(cli.app, ["encode", "mp3", "music"])

    assert result.exit_code == 0, result.output
    assert captured["params"] == {"bitRateMode": "vbr", "vbrQuality": "4", "channelMode": "2"}


def test_encode_mp3_quality_flag_enables_quality(captured) -> None:
    result = runner.invoke(
        cli.app,
        [
            "encode",
            "mp3",
            "--bitratemode",
            "cbr",
            "--bitrate",
            "192",
            "--channelmode",
            "0",
            "--quality",
            "2",
            "--output-dir",
            "out",
            "a.wav",
            "b.wav",
        ],
    )

    assert result.exit_code == 0, result.output
    assert captured["params"] == {
        "bitRateMode": "cbr",
        "bitRate": "192",
        "channelMode": "0",
        "useQuality": "true",
        "quality": "2",
    }
    assert captured["output_dir"] == Path("out")
    assert captured["paths"] == [Path("a.wav"), Path("b.wav")]


def test_encode_flac_defaults(captured) -> None:
    result = runner.invoke(cli.app, ["encode", "flac", "--buffersize", "256", "x.wav"])

    assert result.exit_code == 0, result.output
    assert captured["params"] == {"bitDepth": "16"}
    assert captured["buffer_size"] == 256


def test_invalid_parameters_exit_with_code_2(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["encode", "wav", "--bitdepth", "11", str(tmp_path)])

    assert result.exit_code == 2
    assert "bitDepth" in result.output


def test_failed_files_exit_with_code_1(tmp_path: Path) -> None:
    broken = tmp_path / "broken.wav"
    broken.write_bytes(b"\x00" * 64)

    result = runner.invoke(cli.app, ["encode", "wav", str(broken)])

    assert result.exit_code == 1
    assert "[FAILED] #1" in result.output
    assert "failed=1" in result.output


def test_encode_http_serves_app_in_private_temp_dir(monkeypatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_run(app, host, port):
        captured.update(app=app, host=host, port=port)
        captured["temp_dir"] = app.state.conversion_service.output_provider.directory
        assert captured["temp_dir"].exists()

    monkeypatch.setattr(cli.uvicorn, "run", fake_run)

    result = runner.invoke(
        cli.app,
        ["encode", "http", "--port", "9090", "--tempdir", str(tmp_path), "--buffersize", "512"],
    )

    assert result.exit_code == 0, result.output
    assert captured["port"] == 9090
    assert captured["temp_dir"].parent == tmp_path
    assert not captured["temp_dir"].exists()
    assert captured["app"].state.conversion_service.buffer_size == 512


def test_module_entrypoint_calls_cli_main(monkeypatch):
    called = {"value": False}

    def fake_main():
        called["value"] = True

    monkeypatch.setattr(cli, "main", fake_main)

    with pytest.raises(SystemExit) as exc_info:
        runpy.run_module("phono.__main__", run_name="__main__")

    assert called["value"]
    assert exc_info.value.code == 0

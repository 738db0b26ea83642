"""CLI interface for phono."""

import logging
from pathlib import Path

import typer
import uvicorn

from .application.conversion_service import DEFAULT_BUFFER_SIZE
from .encode_options import BitRateMode
from .errors import ParameterValidationError
from .infrastructure.temp_files import private_temp_dir
from .interfaces.cli_handlers import run_batch_conversion
from .utils.config import load_settings, settings_from_env

app = typer.Typer(help="phono command line interface")
encode_app = typer.Typer(help="Encode audio files or serve the encoding API.")
app.add_typer(encode_app, name="encode")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _paths_argument():
    return typer.Argument(
        ..., help="Files or directories to convert; directories are walked recursively."
    )


def _buffer_size_option(default: int | None = DEFAULT_BUFFER_SIZE):
    return typer.Option(default, "--buffersize", min=1, help="Frames per pipeline buffer.")


def _output_dir_option():
    return typer.Option(
        None,
        "--output-dir",
        help="Directory for converted files. Defaults to each input's directory.",
    )


def _concurrency_option():
    return typer.Option(
        4,
        "--concurrency-limit",
        min=1,
        help="Maximum number of concurrent conversion jobs.",
    )


@app.callback()
def root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Convert audio between WAV, MP3 and FLAC."""

    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def _run_encoding(
    paths: list[Path],
    output_format_name: str,
    params: dict[str, str],
    buffer_size: int,
    output_dir: Path | None,
    concurrency_limit: int,
) -> None:
    try:
        results, summary = run_batch_conversion(
            paths,
            output_format_name,
            params,
            buffer_size=buffer_size,
            output_dir=output_dir,
            concurrency_limit=concurrency_limit,
        )
    except ParameterValidationError as error:
        typer.echo(f"Invalid parameters: {error.message}", err=True)
        raise typer.Exit(code=2) from error
    except ValueError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error

    for item in results:
        if item["status"] == "succeeded":
            typer.echo(
                f"[OK] #{item['index']} input={item['input']} "
                f"output={item['output']} correlation_id={item['correlation_id']}"
            )
        else:
            typer.echo(
                f"[FAILED] #{item['index']} input={item['input']} "
                f"error={item['error']} correlation_id={item['correlation_id']}"
            )

    typer.echo(
        "Summary: "
        f"total={summary['total']} "
        f"succeeded={summary['succeeded']} "
        f"failed={summary['failed']}"
    )
    if summary["failed"]:
        raise typer.Exit(code=1)


@encode_app.command("wav")
def encode_wav_command(
    paths: list[Path] = _paths_argument(),
    bitdepth: int = typer.Option(24, "--bitdepth", help="Bit depth: 8, 16, 24 or 32."),
    buffersize: int = _buffer_size_option(),
    output_dir: Path | None = _output_dir_option(),
    concurrency_limit: int = _concurrency_option(),
) -> None:
    """Encode audio files to WAV."""

    _run_encoding(
        paths, "wav", {"bitDepth": str(bitdepth)}, buffersize, output_dir, concurrency_limit
    )


@encode_app.command("mp3")
def encode_mp3_command(
    paths: list[Path] = _paths_argument(),
    channelmode: int = typer.Option(
        2, "--channelmode", help="Channel mode: 0 mono, 1 stereo, 2 joint stereo."
    ),
    bitratemode: str = typer.Option("vbr", "--bitratemode", help="Bit rate mode: cbr, abr or vbr."),
    bitrate: int = typer.Option(
        4, "--bitrate", help="Bit rate in kbps for cbr/abr, or VBR quality 0-9 for vbr."
    ),
    quality: int | None = typer.Option(
        None, "--quality", help="Encoder algorithm quality 0-9. Validated, but the MP3 encoder ignores it."
    ),
    buffersize: int = _buffer_size_option(),
    output_dir: Path | None = _output_dir_option(),
    concurrency_limit: int = _concurrency_option(),
) -> None:
    """Encode audio files to MP3."""

    rate_parameter = "vbrQuality" if bitratemode.strip().upper() == BitRateMode.VBR.value else "bitRate"
    params = {
        "bitRateMode": bitratemode,
        rate_parameter: str(bitrate),
        "channelMode": str(channelmode),
    }
    if quality is not None:
        params["useQuality"] = "true"
        params["quality"] = str(quality)

    _run_encoding(paths, "mp3", params, buffersize, output_dir, concurrency_limit)


@encode_app.command("flac")
def encode_flac_command(
    paths: list[Path] = _paths_argument(),
    bitdepth: int = typer.Option(16, "--bitdepth", help="Bit depth: 8, 16 or 24."),
    buffersize: int = _buffer_size_option(),
    output_dir: Path | None = _output_dir_option(),
    concurrency_limit: int = _concurrency_option(),
) -> None:
    """Encode audio files to FLAC."""

    _run_encoding(
        paths, "flac", {"bitDepth": str(bitdepth)}, buffersize, output_dir, concurrency_limit
    )


@encode_app.command("http")
def encode_http_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: int = typer.Option(8080, "--port", help="Port to listen on."),
    tempdir: Path | None = typer.Option(
        None, "--tempdir", help="Base directory for the server's private temp directory."
    ),
    buffersize: int | None = _buffer_size_option(None),
    config: Path | None = typer.Option(
        None, "--config", help="JSON or YAML settings file. Defaults to PHONO_* env vars."
    ),
) -> None:
    """Serve the encoding API until interrupted."""

    from .api import create_app

    settings = load_settings(config) if config is not None else settings_from_env()
    if buffersize is not None:
        settings = settings.model_copy(update={"buffer_size": buffersize})

    with private_temp_dir(tempdir or settings.temp_dir) as directory:
        typer.echo(f"Serving on http://{host}:{port} (temp dir: {directory})")
        uvicorn.run(
            create_app(settings.model_copy(update={"temp_dir": directory})),
            host=host,
            port=port,
        )


def main() -> None:
    app(prog_name="phono")


if __name__ == "__main__":
    main()

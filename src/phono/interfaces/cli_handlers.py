"""CLI-facing handlers that delegate to application services."""

from __future__ import annotations

import logging
import shutil
import signal
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Mapping
from uuid import uuid4

from phono.application.conversion_service import DEFAULT_BUFFER_SIZE, ConvertAudio
from phono.domain.models import EncoderConfig, Success
from phono.formats import Format, FormatRegistry, build_default_registry, out_file_name
from phono.infrastructure.logging_event_publisher import LoggingEventPublisher
from phono.infrastructure.temp_files import TempFileOutputProvider
from phono.parameter_validation import validate_parameters

logger = logging.getLogger(__name__)

_event_publisher = LoggingEventPublisher()


def build_service(
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    registry: FormatRegistry | None = None,
) -> ConvertAudio:
    return ConvertAudio(
        registry=registry or build_default_registry(),
        output_provider=TempFileOutputProvider(),
        buffer_size=buffer_size,
        event_publisher=_event_publisher,
    )


def prepare_encoding(
    registry: FormatRegistry, output_format_name: str, params: Mapping[str, str]
) -> tuple[Format, EncoderConfig]:
    """Resolve and validate the target format before any file is opened.

    Raises ParameterValidationError so the caller can reject the whole batch.
    """

    output_format = registry.resolve_output_format(output_format_name)
    return output_format, validate_parameters(output_format, params)


def discover_inputs(paths: Iterable[Path], registry: FormatRegistry) -> list[Path]:
    """Expand directories recursively into files with a supported input extension.

    Paths given explicitly are kept as-is so that missing or unsupported files
    are reported as failures rather than silently skipped.
    """

    extensions = set(registry.input_extensions())
    discovered: list[Path] = []
    for path in paths:
        if path.is_dir():
            discovered.extend(
                sorted(
                    candidate
                    for candidate in path.rglob("*")
                    if candidate.is_file() and candidate.suffix.lower() in extensions
                )
            )
        else:
            discovered.append(path)
    return discovered


def output_path_for(input_path: Path, output_format: Format, output_dir: Path | None) -> Path:
    directory = output_dir or input_path.parent
    destination = directory / f"{input_path.stem}{output_format.default_extension}"
    if destination.resolve() == input_path.resolve():
        destination = directory / out_file_name(input_path.stem, 1, output_format.default_extension)
    return destination


def convert_path(
    service: ConvertAudio,
    input_path: Path,
    output_format: Format,
    params: Mapping[str, str],
    output_dir: Path | None,
    correlation_id: str,
) -> Path:
    """Convert one file and copy the encoded result next to it (or into ``output_dir``)."""

    destination = output_path_for(input_path, output_format, output_dir)
    with input_path.open("rb") as input_stream, service.convert(
        input_stream,
        input_path.name,
        output_format.name,
        params,
        correlation_id=correlation_id,
    ) as outcome:
        if not isinstance(outcome, Success):
            raise outcome.error
        destination.parent.mkdir(parents=True, exist_ok=True)
        with destination.open("wb") as output_stream:
            shutil.copyfileobj(outcome.stream, output_stream)
    return destination


@contextmanager
def sigterm_as_interrupt() -> Iterator[None]:
    """Raise KeyboardInterrupt on SIGTERM so running jobs release their outputs."""

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _interrupt(signum, frame) -> None:
        raise KeyboardInterrupt

    previous = signal.signal(signal.SIGTERM, _interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def run_batch_conversion(
    paths: Iterable[Path],
    output_format_name: str,
    params: Mapping[str, str],
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    output_dir: Path | None = None,
    concurrency_limit: int = 4,
    service: ConvertAudio | None = None,
) -> tuple[list[dict[str, str]], dict[str, int]]:
    service = service or build_service(buffer_size)
    output_format, _ = prepare_encoding(service.registry, output_format_name, params)

    inputs = discover_inputs(paths, service.registry)
    if not inputs:
        raise ValueError("No input files with a supported extension were found.")

    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    def _process(input_path: Path, item_index: int) -> dict[str, str]:
        correlation_id = str(uuid4())
        try:
            written_path = convert_path(
                service,
                input_path,
                output_format,
                params,
                output_dir,
                correlation_id,
            )
            return {
                "index": str(item_index),
                "input": str(input_path),
                "output": str(written_path),
                "status": "succeeded",
                "correlation_id": correlation_id,
            }
        except Exception as error:  # noqa: BLE001
            logger.debug("Conversion of %s failed", input_path, exc_info=True)
            return {
                "index": str(item_index),
                "input": str(input_path),
                "status": "failed",
                "correlation_id": correlation_id,
                "error": str(error),
            }

    safe_concurrency = max(1, concurrency_limit)
    results: list[dict[str, str]] = []
    executor = ThreadPoolExecutor(max_workers=safe_concurrency)
    try:
        with sigterm_as_interrupt():
            futures = [
                executor.submit(_process, input_path, idx)
                for idx, input_path in enumerate(inputs, start=1)
            ]
            for future in as_completed(futures):
                results.append(future.result())
    except KeyboardInterrupt:
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    executor.shutdown(wait=True)

    results.sort(key=lambda item: int(item["index"]))
    success_count = sum(1 for item in results if item["status"] == "succeeded")
    summary = {
        "total": len(results),
        "succeeded": success_count,
        "failed": len(results) - success_count,
    }
    return results, summary

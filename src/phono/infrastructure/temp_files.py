"""Temporary-file infrastructure helpers."""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from tempfile import NamedTemporaryFile, mkdtemp
from typing import BinaryIO, Iterator

from phono.application.ports import ScopedOutput
from phono.errors import ResourceError

logger = logging.getLogger(__name__)


def _release_temp_file(handle: BinaryIO, path: Path) -> None:
    problems = []
    try:
        handle.close()
    except OSError as error:
        problems.append(f"close: {error}")
    try:
        path.unlink(missing_ok=True)
    except OSError as error:
        problems.append(f"remove: {error}")
    if problems:
        raise ResourceError(f"Failed to release temp file {path}: {'; '.join(problems)}")


class TempFileOutputProvider:
    """Allocate job outputs as named temporary files in one directory."""

    def __init__(self, directory: Path | None = None, prefix: str = "phono-") -> None:
        self.directory = directory
        self.prefix = prefix

    def acquire(self, hint: str) -> ScopedOutput:
        try:
            handle = NamedTemporaryFile(
                mode="w+b",
                dir=self.directory,
                prefix=self.prefix,
                suffix=hint,
                delete=False,
            )
        except OSError as error:
            raise ResourceError(f"Failed to create temp file: {error}") from error

        path = Path(handle.name)
        return ScopedOutput(
            handle=handle,
            release=lambda: _release_temp_file(handle, path),
            name=str(path),
        )


@contextmanager
def private_temp_dir(base: Path | None = None, prefix: str = "phono") -> Iterator[Path]:
    """Yield a fresh directory for job outputs and remove it with its contents on exit."""

    directory = Path(mkdtemp(prefix=prefix, dir=base))
    try:
        yield directory
    finally:
        try:
            shutil.rmtree(directory)
        except OSError:
            logger.warning("Failed to clean up temp directory %s", directory, exc_info=True)

"""API-facing handlers that adapt HTTP requests to conversion jobs."""

from __future__ import annotations

from typing import Any, AsyncIterator

from fastapi import HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import FormData
from starlette.types import Message, Receive

from phono.application.conversion_service import ConversionJob
from phono.domain.models import Outcome, PipelineFailure, ResourceFailure, ValidationFailure
from phono.errors import (
    ParameterValidationError,
    SizeExceededError,
    UnsupportedFormatError,
)

FILE_KEY = "input-file"
FORMAT_KEY = "format"
CHUNK_SIZE = 64 * 1024


def limited_receive(receive: Receive, max_bytes: int) -> Receive:
    """Wrap an ASGI receive callable so the body stops once ``max_bytes`` is passed."""

    received = 0

    async def _receive() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                raise SizeExceededError(max_bytes)
        return message

    return _receive


async def read_limited_form(request: Request, max_bytes: int | None) -> FormData:
    """Parse the multipart body, rejecting it as soon as it exceeds ``max_bytes``."""

    if max_bytes is None:
        return await request.form()

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise SizeExceededError(max_bytes)

    limited = Request(request.scope, receive=limited_receive(request.receive, max_bytes))
    return await limited.form()


def form_params(form: FormData) -> dict[str, str]:
    """Collect the text fields of a form except the output format selector."""

    return {
        key: value
        for key, value in form.multi_items()
        if isinstance(value, str) and key != FORMAT_KEY
    }


def client_error(error: ParameterValidationError, correlation_id: str | None = None) -> HTTPException:
    if isinstance(error, SizeExceededError):
        status = 413
    elif isinstance(error, UnsupportedFormatError):
        status = 415
    else:
        status = 400
    detail: dict[str, Any] = error.as_dict()
    if correlation_id:
        detail["correlation_id"] = correlation_id
    return HTTPException(status_code=status, detail=detail)


def outcome_error(outcome: Outcome, correlation_id: str) -> HTTPException:
    """Translate a failed outcome; pipeline and resource detail stays in server logs."""

    if isinstance(outcome, ValidationFailure):
        return client_error(outcome.error, correlation_id)
    if isinstance(outcome, PipelineFailure):
        return HTTPException(
            status_code=422,
            detail={
                "code": "conversion_failed",
                "message": "Failed to convert input audio.",
                "correlation_id": correlation_id,
            },
        )
    if isinstance(outcome, ResourceFailure):
        return HTTPException(
            status_code=500,
            detail={
                "code": "resource_failure",
                "message": "Failed to allocate output storage.",
                "correlation_id": correlation_id,
            },
        )
    raise TypeError(f"Outcome {type(outcome).__name__} is not a failure.")


async def iter_job_output(job: ConversionJob, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Stream a delivered job's output and release it when the transfer ends."""

    stream = job.outcome.stream
    try:
        while True:
            chunk = await run_in_threadpool(stream.read, chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        job.release()


__all__ = [
    "FILE_KEY",
    "FORMAT_KEY",
    "client_error",
    "form_params",
    "iter_job_output",
    "limited_receive",
    "outcome_error",
    "read_limited_form",
]

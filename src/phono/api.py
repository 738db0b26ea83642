"""FastAPI interface for phono."""

from __future__ import annotations

from uuid import uuid4

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.datastructures import FormData, UploadFile

from .application.conversion_service import ConversionJob, ConvertAudio
from .application.ports import OutputProvider
from .domain.models import Success
from .domain.policies import InputSizePolicy
from .errors import ParameterValidationError
from .formats import FormatRegistry, build_default_registry, out_file_name
from .infrastructure.logging_event_publisher import LoggingEventPublisher
from .infrastructure.temp_files import TempFileOutputProvider
from .interfaces.api_handlers import (
    FILE_KEY,
    FORMAT_KEY,
    client_error,
    form_params,
    iter_job_output,
    outcome_error,
    read_limited_form,
)
from .utils.config import ServiceSettings, settings_from_env


def create_app(
    settings: ServiceSettings | None = None,
    registry: FormatRegistry | None = None,
    output_provider: OutputProvider | None = None,
) -> FastAPI:
    """Build the HTTP application around one conversion service."""

    settings = settings or settings_from_env()
    registry = registry or build_default_registry()
    application = FastAPI(title="phono API", version="0.1.0")
    application.state.input_size_policy = settings.input_size_policy()
    application.state.conversion_service = ConvertAudio(
        registry=registry,
        output_provider=output_provider or TempFileOutputProvider(directory=settings.temp_dir),
        buffer_size=settings.buffer_size,
        event_publisher=LoggingEventPublisher(),
    )

    @application.get("/health")
    def health() -> dict[str, str]:
        """Health check endpoint."""

        return {"status": "ok"}

    @application.get("/formats")
    def formats(request: Request) -> dict:
        """Describe supported formats, their parameters and upload limits."""

        service: ConvertAudio = request.app.state.conversion_service
        policy: InputSizePolicy = request.app.state.input_size_policy
        return {
            "file_key": FILE_KEY,
            "input_extensions": list(service.registry.input_extensions()),
            "formats": service.registry.describe(),
            "max_input_sizes": {
                fmt.name: policy.limit_for(fmt) or 0 for fmt in service.registry.formats()
            },
        }

    @application.post("/encode/{input_format}")
    async def encode(
        input_format: str,
        request: Request,
        x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
    ) -> StreamingResponse:
        """Convert the uploaded file to the format named by the ``format`` field."""

        service: ConvertAudio = request.app.state.conversion_service
        policy: InputSizePolicy = request.app.state.input_size_policy
        correlation_id = x_correlation_id or str(uuid4())

        try:
            resolved = service.registry.resolve_input_format(input_format)
            form = await read_limited_form(request, policy.limit_for(resolved))
        except ParameterValidationError as error:
            raise client_error(error, correlation_id) from error

        upload = form.get(FILE_KEY)
        if not isinstance(upload, UploadFile):
            await form.close()
            raise HTTPException(
                status_code=400,
                detail={
                    "code": "missing_file",
                    "message": f"Multipart field {FILE_KEY!r} with the input file is required.",
                    "correlation_id": correlation_id,
                },
            )

        output_format_name = form.get(FORMAT_KEY)
        job = service.open_job(
            upload.file,
            upload.filename or f"upload{resolved.default_extension}",
            output_format_name if isinstance(output_format_name, str) else "",
            form_params(form),
            correlation_id=correlation_id,
        )
        try:
            outcome = await run_in_threadpool(job.run)
        except BaseException:
            job.release()
            await form.close()
            raise

        if not isinstance(outcome, Success):
            await form.close()
            raise outcome_error(outcome, correlation_id)

        filename = out_file_name("result", 1, outcome.output_format.default_extension)
        return StreamingResponse(
            iter_job_output(job),
            media_type=outcome.media_type,
            headers={
                "Content-Length": str(outcome.byte_count),
                "Content-Disposition": f"attachment; filename={filename}",
                "X-Correlation-Id": correlation_id,
            },
            background=BackgroundTask(_finish_request, job, form),
        )

    return application


async def _finish_request(job: ConversionJob, form: FormData) -> None:
    job.release()
    await form.close()


app = create_app()

"""Application services orchestrating conversion jobs.

A ``ConversionJob`` moves through::

    received -> format_resolved -> validated -> resource_acquired
             -> running -> finalizing -> delivered | aborted

Formats and parameters are checked before the output resource is acquired, so
a rejected request never touches storage. Once acquired, the output is
released exactly once: on abort, on ``release()``, or when the job's context
exits, whichever comes first.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterator, Mapping
from uuid import uuid4

from phono.application.ports import EventPublisher, NullEventPublisher, OutputProvider, ScopedOutput
from phono.domain.events import (
    ConversionCompleted,
    ConversionFailed,
    ConversionRequested,
    ConversionValidated,
    OutputAcquired,
    OutputReleased,
)
from phono.domain.models import (
    ConversionRequest,
    EncoderConfig,
    JobState,
    Outcome,
    PipelineFailure,
    ResourceFailure,
    Success,
    ValidationFailure,
)
from phono.errors import ParameterValidationError, ResourceError
from phono.formats import Format, FormatRegistry
from phono.parameter_validation import validate_parameters
from phono.pipeline import PipelineRunner
from phono.streams import StreamFactory

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1024


@dataclass(slots=True)
class ConversionJob:
    """One conversion request and the output resource it owns."""

    request: ConversionRequest
    registry: FormatRegistry
    stream_factory: StreamFactory
    output_provider: OutputProvider
    buffer_size: int = DEFAULT_BUFFER_SIZE
    event_publisher: EventPublisher = NullEventPublisher()
    correlation_id: str = field(default_factory=lambda: str(uuid4()))
    state: JobState = JobState.RECEIVED
    input_format: Format | None = None
    output_format: Format | None = None
    config: EncoderConfig | None = None
    outcome: Outcome | None = None
    output: ScopedOutput | None = None
    released: bool = False

    def __enter__(self) -> ConversionJob:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def run(self) -> Outcome:
        if self.state is not JobState.RECEIVED:
            raise RuntimeError(f"Job {self.correlation_id} already ran ({self.state.value}).")

        try:
            self.input_format = self.registry.resolve_input_format(self.request.declared_filename)
            self.output_format = self.registry.resolve_output_format(self.request.output_format_name)
            self._transition(JobState.FORMAT_RESOLVED)
            self.event_publisher.publish(
                ConversionRequested(
                    correlation_id=self.correlation_id,
                    payload_summary={
                        "declared_filename": self.request.declared_filename,
                        "input_format": self.input_format.name,
                        "output_format": self.output_format.name,
                    },
                )
            )

            self.config = validate_parameters(self.output_format, self.request.raw_params)
            self._transition(JobState.VALIDATED)
            self.event_publisher.publish(
                ConversionValidated(
                    correlation_id=self.correlation_id,
                    payload_summary={"params": self.config.to_params()},
                )
            )
        except ParameterValidationError as error:
            return self._abort(ValidationFailure(error), stage="validation")

        decoder = self.stream_factory.build_decoder(self.input_format, self.request.input_stream)
        configured_encoder = self.stream_factory.build_encoder(self.config)

        try:
            self.output = self.output_provider.acquire(self.output_format.default_extension)
        except ResourceError as error:
            logger.error("Failed to acquire output", extra={"correlation_id": self.correlation_id}, exc_info=error)
            return self._abort(ResourceFailure(error), stage="acquire")
        self._transition(JobState.RESOURCE_ACQUIRED)
        self.event_publisher.publish(
            OutputAcquired(
                correlation_id=self.correlation_id,
                payload_summary={"destination": self.output.name},
            )
        )

        try:
            self._transition(JobState.RUNNING)
            encoder = configured_encoder.bind(self.output.handle)
            result = PipelineRunner(self.buffer_size).run(decoder, encoder)
        except BaseException:
            self.state = JobState.ABORTED
            self.release()
            raise

        if not result.ok:
            logger.error(
                "Conversion pipeline failed",
                extra={"correlation_id": self.correlation_id, "frames_transferred": result.frames_transferred},
                exc_info=result.error,
            )
            return self._abort(PipelineFailure(result.error), stage="pipeline")

        self._transition(JobState.FINALIZING)
        handle = self.output.handle
        try:
            byte_count = handle.seek(0, os.SEEK_END)
            handle.seek(0)
        except OSError as error:
            return self._abort(
                ResourceFailure(ResourceError(f"Failed to rewind output: {error}")),
                stage="finalize",
            )

        self.outcome = Success(byte_count=byte_count, output_format=self.output_format, stream=handle)
        self._transition(JobState.DELIVERED)
        self.event_publisher.publish(
            ConversionCompleted(
                correlation_id=self.correlation_id,
                payload_summary={
                    "output_format": self.output_format.name,
                    "byte_count": byte_count,
                    "frames": result.frames_transferred,
                },
            )
        )
        return self.outcome

    def release(self) -> None:
        """Close and remove the output resource. Safe to call more than once."""

        if self.output is None or self.released:
            return
        self.released = True
        try:
            self.output.release()
        except ResourceError:
            logger.warning(
                "Failed to release output",
                extra={"correlation_id": self.correlation_id, "destination": self.output.name},
                exc_info=True,
            )
            return
        self.event_publisher.publish(
            OutputReleased(
                correlation_id=self.correlation_id,
                payload_summary={"destination": self.output.name},
            )
        )

    def _transition(self, state: JobState) -> None:
        logger.debug(
            "Job %s: %s -> %s",
            self.correlation_id,
            self.state.value,
            state.value,
        )
        self.state = state

    def _abort(self, outcome: Outcome, stage: str) -> Outcome:
        self.outcome = outcome
        self._transition(JobState.ABORTED)
        self.event_publisher.publish(
            ConversionFailed(
                correlation_id=self.correlation_id,
                payload_summary={"stage": stage, "code": outcome.error.code, "error": outcome.error.message},
            )
        )
        self.release()
        return outcome


@dataclass(slots=True)
class ConvertAudio:
    """Use case that converts an input stream into another audio format."""

    registry: FormatRegistry
    output_provider: OutputProvider
    stream_factory: StreamFactory = field(default_factory=StreamFactory)
    buffer_size: int = DEFAULT_BUFFER_SIZE
    event_publisher: EventPublisher = NullEventPublisher()

    def open_job(
        self,
        input_stream: BinaryIO,
        declared_filename: str,
        output_format_name: str,
        raw_params: Mapping[str, str] | None = None,
        correlation_id: str | None = None,
    ) -> ConversionJob:
        """Create a job without running it; the caller owns its release."""

        return ConversionJob(
            request=ConversionRequest(
                input_stream=input_stream,
                declared_filename=declared_filename,
                output_format_name=output_format_name,
                raw_params=dict(raw_params or {}),
            ),
            registry=self.registry,
            stream_factory=self.stream_factory,
            output_provider=self.output_provider,
            buffer_size=self.buffer_size,
            event_publisher=self.event_publisher,
            correlation_id=correlation_id or str(uuid4()),
        )

    @contextmanager
    def convert(
        self,
        input_stream: BinaryIO,
        declared_filename: str,
        output_format_name: str,
        raw_params: Mapping[str, str] | None = None,
        correlation_id: str | None = None,
    ) -> Iterator[Outcome]:
        """Run a conversion and yield its outcome; the output is released on exit."""

        with self.open_job(
            input_stream,
            declared_filename,
            output_format_name,
            raw_params,
            correlation_id=correlation_id,
        ) as job:
            yield job.run()

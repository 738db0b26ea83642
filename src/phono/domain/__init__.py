"""DDD domain layer."""

from .events import (
    ConversionCompleted,
    ConversionFailed,
    ConversionRequested,
    ConversionValidated,
    DomainEvent,
    OutputAcquired,
    OutputReleased,
)
from .models import (
    ConversionRequest,
    EncoderConfig,
    FlacEncoderConfig,
    JobState,
    Mp3EncoderConfig,
    Outcome,
    PipelineFailure,
    ResourceFailure,
    Success,
    ValidationFailure,
    WavEncoderConfig,
)
from .policies import DEFAULT_INPUT_SIZE_POLICY, InputSizePolicy

__all__ = [
    "DomainEvent",
    "ConversionRequested",
    "ConversionValidated",
    "OutputAcquired",
    "ConversionCompleted",
    "ConversionFailed",
    "OutputReleased",
    "ConversionRequest",
    "EncoderConfig",
    "WavEncoderConfig",
    "Mp3EncoderConfig",
    "FlacEncoderConfig",
    "JobState",
    "Outcome",
    "Success",
    "ValidationFailure",
    "PipelineFailure",
    "ResourceFailure",
    "InputSizePolicy",
    "DEFAULT_INPUT_SIZE_POLICY",
]
